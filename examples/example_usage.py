"""Example: drive the day-session service directly (no Flask).

Controllers are thin; the rules live in the services.
"""

import importlib

from config import get_settings_module

from src.aakb_workforce.aakb_workforce.container import build_container


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)
    sessions = container.day_session_service

    for record in sessions.get_history(4, limit=5):
        print(record.work_date, record.status.value, record.check_in_time, record.check_out_time)
    print("today:", sessions.get_day_state(4).value)


if __name__ == "__main__":
    main()
