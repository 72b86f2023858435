# src/skillreg/services/registry/maintenance.py
from __future__ import annotations

import logging

from skillreg.config import const
from skillreg.domain import VerifyReport
from skillreg.services.registry.objects import ObjectStore

_log = logging.getLogger("skillreg.registry.maintenance")


class CacheMaintenance:
    def __init__(self, objects: ObjectStore):
        self.objects = objects

    def verify(self) -> VerifyReport:
        checked = len(self.objects.list_objects())
        corrupted = self.objects.verify_all_objects()
        _log.info("cache.verify", extra={"extra": {"checked": checked, "corrupted": len(corrupted)}})
        return VerifyReport(checked=checked, corrupted=corrupted)

    def clean(self, max_age: float = const.TEMP_MAX_AGE_SEC) -> int:
        if max_age < 0:
            max_age = 0
        return self.objects.cleanup_temp_files(max_age=max_age)
