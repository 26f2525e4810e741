"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import time

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_REPORT_DAYS = 7
DEFAULT_SESSION_DAYS = 7

DEFAULT_LATE_CUTOFF = time(9, 30)
MIN_WORK_HOURS = 8
OVERTIME_HOURS = 10

DEFAULT_ORG_TIMEZONE = "Asia/Kolkata"

# Seconds a worker's client may block waiting for an early-exit decision.
APPROVAL_WAIT_MAX_SECONDS = 30

DEFAULT_MONTHLY_HOLIDAYS = 4
DEFAULT_SUNDAY_END_TIME = time(13, 0)

SETTING_KIOSK_DEVICE_ID = "kiosk_device_id"
SETTING_LATE_TIME = "late_time"
SETTING_EMERGENCY_CONTACT = "emergency_contact"

HOLIDAY_SETTING_MONTHLY_ALLOWED = "monthly_holidays_allowed"
HOLIDAY_SETTING_SUNDAY_HALF_DAY = "sunday_half_day"
HOLIDAY_SETTING_SUNDAY_END_TIME = "sunday_end_time"
HOLIDAY_SETTING_ALLOW_CONSECUTIVE = "allow_consecutive_holidays"

WHATSAPP_SHARE_URL = "https://wa.me/{phone}?text={text}"
