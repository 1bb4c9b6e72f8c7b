from __future__ import annotations

import io
import logging
from datetime import date, datetime, timezone
from functools import wraps

from flask import Flask, jsonify, request, send_file, session

from ..common.datetime_utils import parse_clock_time, parse_iso_date
from ..core.constants import (
    ATTENDANCE_MANAGER_ROLES,
    DEFAULT_SESSION_HISTORY_LIMIT,
    DEFAULT_STUDENT_ATTENDANCE_LIMIT,
    MAX_PAGE_LIMIT,
)
from ..core.exceptions import AuthorizationError, CodecFailure, ConflictError, NotFoundError, ValidationError
from .model import AttendanceMark

logger = logging.getLogger(__name__)


def _ok(data=None, message: str = "Success", status: int = 200):
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return jsonify(body), status


def _fail(message: str, status: int = 400):
    return jsonify({"success": False, "message": message}), status


def _optional_date(value):
    value = (value or "").strip()
    return parse_iso_date(value) if value else None


def _parse_mark(item) -> AttendanceMark:
    if not isinstance(item, dict):
        raise ValidationError("Each attendance record must be an object")
    try:
        attendance_date = parse_iso_date(str(item.get("attendanceDate") or ""))
    except ValueError:
        raise ValidationError("attendanceDate must be YYYY-MM-DD")
    raw_time = item.get("checkInTime")
    try:
        check_in_time = parse_clock_time(str(raw_time)) if raw_time else None
    except ValueError:
        raise ValidationError("checkInTime must be HH:MM or HH:MM:SS")
    return AttendanceMark.create(
        student_id=item.get("studentId"),
        class_id=item.get("classId"),
        attendance_date=attendance_date,
        status=item.get("status"),
        method=item.get("method"),
        check_in_time=check_in_time,
        remarks=item.get("remarks"),
    )


def register(app: Flask, container) -> None:
    def _server_error(message: str, exc: Exception):
        logger.exception(message)
        body = {"success": False, "message": message}
        if bool(app.config.get("DEBUG", False)):
            body["error"] = str(exc)
        return jsonify(body), 500

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session or "school_id" not in session:
                return _fail("Authentication required", 401)
            return view(*args, **kwargs)

        return wrapper

    def session_manager_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session or "school_id" not in session:
                return _fail("Authentication required", 401)
            if session.get("role") not in ATTENDANCE_MANAGER_ROLES:
                return _fail("You do not have permission to manage attendance sessions", 403)
            return view(*args, **kwargs)

        return wrapper

    @app.route("/api/health", methods=["GET"], endpoint="api_health")
    def api_health():
        return jsonify({
            "status": "OK",
            "service": "school-platform",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    @app.route("/api/attendance/sessions", methods=["POST"], endpoint="api_start_session")
    @session_manager_required
    def api_start_session():
        data = request.get_json(silent=True) or {}
        try:
            raw_date = (data.get("sessionDate") or "").strip()
            session_date = parse_iso_date(raw_date) if raw_date else date.today()
        except (ValueError, AttributeError):
            return _fail("sessionDate must be YYYY-MM-DD")

        try:
            att_session, issued = container.attendance_session_service.start_session(
                school_id=session["school_id"],
                class_id=data.get("classId"),
                teacher_id=session["user_id"],
                session_date=session_date,
                session_type=data.get("sessionType") or "full_day",
                notes=data.get("notes"),
            )
        except ValidationError as e:
            return _fail(str(e))
        except ConflictError as e:
            return _fail(str(e), 409)
        except Exception as e:
            return _server_error("Error starting attendance session", e)

        return _ok(
            {"session": att_session.to_dict(), "qrCode": issued.to_dict()},
            "Attendance session started successfully",
            201,
        )

    @app.route("/api/attendance/sessions/<session_id>", methods=["GET"], endpoint="api_get_session")
    @login_required
    def api_get_session(session_id: str):
        try:
            att_session = container.attendance_session_service.get_session(session_id, session["school_id"])
        except NotFoundError as e:
            return _fail(str(e), 404)
        return _ok({"session": att_session.to_dict()})

    @app.route("/api/attendance/class/<class_id>/sessions", methods=["GET"], endpoint="api_session_history")
    @login_required
    def api_session_history(class_id: str):
        try:
            limit = int(request.args.get("limit", DEFAULT_SESSION_HISTORY_LIMIT))
        except ValueError:
            return _fail("limit must be an integer")
        items = container.attendance_session_service.get_history(
            class_id=class_id,
            school_id=session["school_id"],
            limit=max(1, min(limit, MAX_PAGE_LIMIT)),
        )
        return _ok({"sessions": [s.to_dict() for s in items]})

    @app.route("/api/attendance/sessions/<session_id>/qr", methods=["POST"], endpoint="api_refresh_session_qr")
    @session_manager_required
    def api_refresh_session_qr(session_id: str):
        try:
            issued = container.attendance_session_service.refresh_qr(session_id, session["school_id"])
        except NotFoundError as e:
            return _fail(str(e), 404)
        except ValidationError as e:
            return _fail(str(e))
        except Exception as e:
            return _server_error("Error generating QR code", e)
        return _ok({"qrCode": issued.to_dict()}, "QR code generated")

    @app.route("/api/attendance/sessions/<session_id>/qr.png", methods=["GET"], endpoint="api_session_qr_image")
    @session_manager_required
    def api_session_qr_image(session_id: str):
        try:
            issued = container.attendance_session_service.refresh_qr(session_id, session["school_id"])
        except NotFoundError as e:
            return _fail(str(e), 404)
        except ValidationError as e:
            return _fail(str(e))
        except Exception as e:
            return _server_error("Error generating QR code", e)
        return send_file(io.BytesIO(issued.rendered_image), mimetype="image/png")

    @app.route("/api/attendance/sessions/<session_id>/complete", methods=["PUT"], endpoint="api_complete_session")
    @session_manager_required
    def api_complete_session(session_id: str):
        data = request.get_json(silent=True) or {}
        try:
            att_session = container.attendance_session_service.complete_session(
                session_id,
                session["school_id"],
                notes=data.get("notes"),
            )
        except NotFoundError as e:
            return _fail(str(e), 404)
        except Exception as e:
            return _server_error("Error completing attendance session", e)
        return _ok({"session": att_session.to_dict()}, "Attendance session completed successfully")

    @app.route("/api/attendance/mark/qr", methods=["POST"], endpoint="api_mark_by_qr")
    @login_required
    def api_mark_by_qr():
        data = request.get_json(silent=True) or {}
        qr_data = data.get("qrData")
        if not isinstance(qr_data, str) or not qr_data.strip():
            return _fail("Invalid or expired QR code")

        try:
            record = container.attendance_session_service.mark_attendance_by_qr(
                payload=qr_data.strip(),
                student_id=data.get("studentId"),
                school_id=session["school_id"],
            )
        except ValidationError as e:
            return _fail(str(e))
        except Exception as e:
            return _server_error("Error marking attendance via QR code", e)
        return _ok({"attendance": record.to_dict()}, "Attendance marked successfully via QR code")

    @app.route("/api/attendance/qr/verify", methods=["POST"], endpoint="api_verify_qr")
    @login_required
    def api_verify_qr():
        data = request.get_json(silent=True) or {}
        qr_data = data.get("qrData")
        if not isinstance(qr_data, str):
            return _fail("Invalid or expired QR code")

        try:
            claims = container.session_token_service.verify(qr_data.strip(), session["school_id"])
        except CodecFailure as e:
            return _server_error("Error verifying QR code", e)
        if claims is None:
            return _fail("Invalid or expired QR code")
        return _ok({"claims": claims.to_dict()}, "QR code verified")

    @app.route("/api/attendance/mark", methods=["POST"], endpoint="api_mark_attendance")
    @login_required
    def api_mark_attendance():
        data = request.get_json(silent=True) or {}
        items = data.get("attendanceRecords")
        if not isinstance(items, list) or not items:
            return _fail("Attendance records array is required")

        try:
            marks = [_parse_mark(item) for item in items]
            records = container.attendance_session_service.mark_attendance(
                school_id=session["school_id"],
                marked_by=session["user_id"],
                current_role=session.get("role"),
                marks=marks,
                session_id=data.get("sessionId") or None,
            )
        except AuthorizationError as e:
            return _fail(str(e), 403)
        except NotFoundError as e:
            return _fail(str(e), 404)
        except ValidationError as e:
            return _fail(str(e))
        except Exception as e:
            return _server_error("Error marking attendance", e)

        return _ok(
            {"records": [r.to_dict() for r in records], "sessionId": data.get("sessionId")},
            f"Successfully marked attendance for {len(records)} students",
            201,
        )

    @app.route("/api/attendance/bulk", methods=["POST"], endpoint="api_bulk_attendance")
    @login_required
    def api_bulk_attendance():
        body = request.get_json(silent=True) or {}
        operation = body.get("operation")
        data = body.get("data")
        if not operation or not isinstance(data, dict):
            return _fail("Operation and data are required")

        try:
            target = _optional_date(data.get("date") or data.get("toDate")) or date.today()
            from_date = _optional_date(data.get("fromDate"))
        except (ValueError, AttributeError):
            return _fail("Dates must be YYYY-MM-DD")

        try:
            records = container.attendance_session_service.bulk_mark(
                operation=operation,
                school_id=session["school_id"],
                class_id=data.get("classId"),
                attendance_date=target,
                marked_by=session["user_id"],
                current_role=session.get("role"),
                from_date=from_date,
            )
        except AuthorizationError as e:
            return _fail(str(e), 403)
        except ValidationError as e:
            return _fail(str(e))
        except Exception as e:
            return _server_error("Error performing bulk operation", e)

        return _ok(
            {"records": [r.to_dict() for r in records]},
            f"Bulk operation '{operation}' completed successfully",
        )

    @app.route("/api/attendance/class/<class_id>", methods=["GET"], endpoint="api_class_attendance")
    @login_required
    def api_class_attendance(class_id: str):
        raw_date = (request.args.get("date") or "").strip()
        if not raw_date:
            return _fail("Date parameter is required")
        try:
            attendance_date = parse_iso_date(raw_date)
        except ValueError:
            return _fail("date must be YYYY-MM-DD")

        result = container.attendance_session_service.get_class_attendance(
            class_id=class_id,
            attendance_date=attendance_date,
            school_id=session["school_id"],
        )
        return _ok(result.to_dict())

    @app.route("/api/attendance/student/<student_id>", methods=["GET"], endpoint="api_student_attendance")
    @login_required
    def api_student_attendance(student_id: str):
        try:
            start_date = _optional_date(request.args.get("startDate"))
            end_date = _optional_date(request.args.get("endDate"))
            page = int(request.args.get("page", 1))
            limit = int(request.args.get("limit", DEFAULT_STUDENT_ATTENDANCE_LIMIT))
        except ValueError:
            return _fail("Invalid query parameters")
        limit = max(1, min(limit, MAX_PAGE_LIMIT))

        try:
            records = container.attendance_session_service.get_student_attendance(
                student_id=student_id,
                school_id=session["school_id"],
                start_date=start_date,
                end_date=end_date,
                page=page,
                limit=limit,
            )
        except ValidationError as e:
            return _fail(str(e))

        return _ok({
            "attendance": [r.to_dict() for r in records],
            "pagination": {"page": page, "perPage": limit},
        })
