from __future__ import annotations

import uuid


class UuidIdProvider:
    def __init__(self, prefix: str = "upload") -> None:
        self._prefix = prefix

    def generate(self) -> str:
        return f"{self._prefix}_{uuid.uuid4().hex}"
