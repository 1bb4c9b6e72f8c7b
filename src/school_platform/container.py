from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRecordRepository, MySQLStudentRepository
from .attendance.mysql_session_repository import MySQLAttendanceSessionRepository
from .attendance.service import AttendanceSessionService
from .common.clock import Clock
from .core import constants
from .database.connection import DBConfig, DatabaseConnection
from .qrcodes.renderer import QRCodePngRenderer
from .qrcodes.service import SessionTokenService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    sessions_repo: MySQLAttendanceSessionRepository
    records_repo: MySQLAttendanceRecordRepository
    students_repo: MySQLStudentRepository

    session_token_service: SessionTokenService
    attendance_session_service: AttendanceSessionService


def build_session_token_service(*, qr_config: Optional[dict] = None, clock: Optional[Clock] = None) -> SessionTokenService:
    qr_config = qr_config or {}
    renderer = QRCodePngRenderer(
        size=int(qr_config.get("image_size", constants.QR_IMAGE_SIZE)),
        border=int(qr_config.get("border", constants.QR_BORDER)),
        error_correction=str(qr_config.get("error_correction", constants.QR_ERROR_CORRECTION)),
        dark_color=str(qr_config.get("dark_color", constants.QR_DARK_COLOR)),
        light_color=str(qr_config.get("light_color", constants.QR_LIGHT_COLOR)),
    )
    return SessionTokenService(
        clock=clock,
        renderer=renderer,
        ttl_minutes=int(qr_config.get("ttl_minutes", constants.SESSION_TOKEN_TTL_MINUTES)),
    )


def build_container(*, db_config: dict, qr_config: Optional[dict] = None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    sessions_repo = MySQLAttendanceSessionRepository(conn)
    records_repo = MySQLAttendanceRecordRepository(conn)
    students_repo = MySQLStudentRepository(conn)

    session_token_service = build_session_token_service(qr_config=qr_config)
    attendance_session_service = AttendanceSessionService(
        sessions_repo,
        records_repo,
        students_repo,
        session_token_service,
    )

    return Container(
        conn=conn,
        sessions_repo=sessions_repo,
        records_repo=records_repo,
        students_repo=students_repo,
        session_token_service=session_token_service,
        attendance_session_service=attendance_session_service,
    )
