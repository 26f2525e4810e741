from __future__ import annotations

import logging
from datetime import time
from typing import Optional

from ..attendance.policy import AttendancePolicy
from ..common.datetime_utils import parse_hhmm
from ..common.validators import require_non_empty
from ..core.constants import (
    DEFAULT_LATE_CUTOFF,
    SETTING_EMERGENCY_CONTACT,
    SETTING_KIOSK_DEVICE_ID,
    SETTING_LATE_TIME,
)
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ValidationError
from .repository import SettingsRepository

logger = logging.getLogger(__name__)


class SettingsService:
    """Organization settings: kiosk registration, late cutoff, emergency contact."""

    def __init__(self, settings: SettingsRepository, *, default_late_cutoff: time = DEFAULT_LATE_CUTOFF):
        self._settings = settings
        self._default_late_cutoff = default_late_cutoff

    @staticmethod
    def _require_admin(current_role: Role) -> None:
        if Role(current_role) != Role.ADMIN:
            raise AuthorizationError("Only admins can change settings")

    def get_kiosk_fingerprint(self) -> Optional[str]:
        return self._settings.get(SETTING_KIOSK_DEVICE_ID) or None

    def register_kiosk(self, fingerprint: str, *, current_role: Role) -> str:
        self._require_admin(current_role)
        fingerprint = require_non_empty(fingerprint, "Device fingerprint")
        self._settings.set(SETTING_KIOSK_DEVICE_ID, fingerprint)
        logger.info("Kiosk device registered")
        return fingerprint

    def clear_kiosk(self, *, current_role: Role) -> None:
        self._require_admin(current_role)
        self._settings.delete(SETTING_KIOSK_DEVICE_ID)
        logger.info("Kiosk device cleared; any device may start the day")

    def get_late_cutoff(self) -> time:
        raw = self._settings.get(SETTING_LATE_TIME)
        if not raw:
            return self._default_late_cutoff
        try:
            return parse_hhmm(raw[:5])
        except ValidationError:
            logger.warning("Ignoring invalid late_time setting %r", raw)
            return self._default_late_cutoff

    def set_late_cutoff(self, value: str, *, current_role: Role) -> time:
        self._require_admin(current_role)
        cutoff = parse_hhmm(value)
        self._settings.set(SETTING_LATE_TIME, cutoff.strftime("%H:%M"))
        return cutoff

    def get_emergency_contact(self) -> Optional[str]:
        return self._settings.get(SETTING_EMERGENCY_CONTACT) or None

    def set_emergency_contact(self, phone: str, *, current_role: Role) -> str:
        self._require_admin(current_role)
        phone = require_non_empty(phone, "Emergency contact")
        if sum(ch.isdigit() for ch in phone) < 7:
            raise ValidationError("Emergency contact must be a phone number")
        self._settings.set(SETTING_EMERGENCY_CONTACT, phone)
        return phone

    def attendance_policy(self) -> AttendancePolicy:
        return AttendancePolicy(late_cutoff=self.get_late_cutoff())

    def as_dict(self) -> dict:
        return {
            "kiosk_registered": self.get_kiosk_fingerprint() is not None,
            "late_time": self.get_late_cutoff().strftime("%H:%M"),
            "emergency_contact": self.get_emergency_contact(),
        }
