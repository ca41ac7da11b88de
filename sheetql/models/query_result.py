from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

"""QueryResult: generic value tree returned by RelationalLoader.execute.

Row values are restricted to None / int / float / str so the result is
JSON-serialisable as-is.
"""

__all__ = [
    "QueryResult",
]


@dataclass(frozen=True)
class QueryResult:
    columns: list[str]
    rows: list[list[Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"columns": list(self.columns), "rows": [list(r) for r in self.rows]}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)
