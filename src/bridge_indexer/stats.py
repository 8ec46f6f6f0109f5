import logging
from typing import List, Tuple

from pydantic import BaseModel, Field


class ProcessingStats(BaseModel):
    written: int = 0
    skipped: int = 0
    failed: int = 0
    # (event name, cause) of every failed event, in processing order.
    failures: List[Tuple[str, str]] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.written + self.skipped + self.failed

    def record_failure(self, event_name: str, cause: BaseException):
        self.failed += 1
        self.failures.append((event_name, f"{type(cause).__name__}: {cause}"))

    def log_summary(self):
        logging.info(
            f"Processed {self.total} events: {self.written} written, "
            f"{self.skipped} skipped, {self.failed} failed"
        )
