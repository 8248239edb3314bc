from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from taskrouter.errors import DepartmentNotFound, DirectoryUnavailable, InvalidInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Department:
    name: str
    email: str

    @property
    def first_word(self) -> str:
        return self.name.lower().split(" ")[0]


class DepartmentDirectory:
    """Read-only view over the departments JSON file.

    The file is re-read on every :meth:`load` so edits show up without a
    restart; nothing is cached between requests.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> list[Department]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.error("Could not read departments file %s: %s", self.path, exc)
            raise DirectoryUnavailable("Failed to load department data") from exc
        try:
            rows = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Could not parse departments file %s: %s", self.path, exc)
            raise DirectoryUnavailable("Failed to parse department data") from exc
        if not isinstance(rows, list):
            raise DirectoryUnavailable("Department data must be a list.")

        out: list[Department] = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            name = str(row.get("name") or "").strip()
            email = str(row.get("email") or "").strip()
            if not name or not email:
                logger.warning("Skipping incomplete department row: %r", row)
                continue
            out.append(Department(name=name, email=email))
        return out


def department_matches(keyword: str, department: Department) -> bool:
    needle = keyword.strip().lower()
    return needle in department.name.lower() or department.first_word in needle


def resolve_department(keyword: str, departments: Iterable[Department]) -> Department:
    """Return the first department matching ``keyword`` in directory order.

    A department matches when its name contains the keyword, or when the
    keyword contains the first word of its name. Both checks ignore case.
    """
    needle = (keyword or "").strip()
    if not needle:
        raise InvalidInput("Department keyword is required.")

    candidates = list(departments)
    for department in candidates:
        if department_matches(needle, department):
            return department
    raise DepartmentNotFound(needle, [department.name for department in candidates])
