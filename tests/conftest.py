from __future__ import annotations

import logging

import pytest

from eventmap.config import Settings, settings
from eventmap.utils.log import LOGGER_NAME


@pytest.fixture(autouse=True)
def _reset_settings_and_logging() -> None:
    defaults = Settings(_env_file=None)
    snapshot = settings.model_dump()
    for field_name in Settings.model_fields:
        setattr(settings, field_name, getattr(defaults, field_name))
    settings.replace_card_ids_enabled = False
    yield
    for field_name, value in snapshot.items():
        setattr(settings, field_name, value)
    package_logger = logging.getLogger(LOGGER_NAME)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
