"""Tests for config constants."""

from academy.config import ALLOWED_DEVICE_LIMITS, AuditAction, UserRole, settings


class TestUserRole:
    def test_only_students_are_device_bound(self) -> None:
        assert UserRole.STUDENT.is_device_bound is True
        assert UserRole.TEACHER.is_device_bound is False
        assert UserRole.ADMIN.is_device_bound is False

    def test_values(self) -> None:
        assert UserRole("student") is UserRole.STUDENT
        assert UserRole("admin") is UserRole.ADMIN


class TestDevicePolicyDefaults:
    def test_default_limit_is_allowed(self) -> None:
        assert settings.DEFAULT_MAX_DEVICES_PER_STUDENT in ALLOWED_DEVICE_LIMITS
        assert ALLOWED_DEVICE_LIMITS == (1, 2)

    def test_enforcement_defaults_off(self) -> None:
        assert settings.DEFAULT_DEVICE_ENFORCEMENT is False


class TestAuditAction:
    def test_all_values_unique(self) -> None:
        values = [
            value
            for name, value in vars(AuditAction).items()
            if not name.startswith("_")
        ]
        assert len(values) == len(set(values))
        assert AuditAction.DEVICE_SESSION_INVALIDATED in values
