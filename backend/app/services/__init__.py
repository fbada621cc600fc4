from app.services.attendance_service import AttendanceService, SqlAttendanceStore

__all__ = ["AttendanceService", "SqlAttendanceStore"]
