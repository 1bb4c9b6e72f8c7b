"""Example: issue and verify a session QR code through the service layer (no Flask, no DB)."""

from pathlib import Path

from school_platform.container import build_session_token_service


def main():
    tokens = build_session_token_service()
    issued = tokens.issue("S1", "SCH1")
    Path("session_qr.png").write_bytes(issued.rendered_image)
    print("payload:", issued.encoded_payload)
    print("expires:", issued.expires_at.isoformat())
    print("same school:", tokens.verify(issued.encoded_payload, "SCH1"))
    print("other school:", tokens.verify(issued.encoded_payload, "SCH2"))


if __name__ == "__main__":
    main()
