"""
Modules must import on the oldest interpreter pyproject.toml declares.
"""
from __future__ import annotations

import re
from pathlib import Path

PACKAGE = Path(__file__).resolve().parents[1] / "syncsketch"
UNION_ANNOTATION = re.compile(r"(?::|->)\s*[\w.\[\], ]+\s\|\s")


def test_union_annotations_are_postponed():
    offenders = []
    for path in PACKAGE.rglob("*.py"):
        source = path.read_text(encoding="utf-8")
        if UNION_ANNOTATION.search(source) and "from __future__ import annotations" not in source:
            offenders.append(str(path.relative_to(PACKAGE)))
    assert offenders == []
