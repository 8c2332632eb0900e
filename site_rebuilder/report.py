# File: site_rebuilder/report.py
"""site_rebuilder.report: итоговый отчёт одного запуска конвейера."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union


@dataclass(slots=True)
class PipelineReport:
    """Результат запуска: обойдённые и отобранные страницы, файлы и удалённые ресурсы."""

    url: str
    slug: str
    pages: List[str] = field(default_factory=list)
    selected_pages: List[str] = field(default_factory=list)
    failed_pages: List[str] = field(default_factory=list)
    files: Dict[str, str] = field(default_factory=dict)
    remote: Optional[Dict[str, Any]] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def json(self, *, pretty: bool = False) -> str:
        """Возвращает JSON-представление отчёта."""
        return json.dumps(self.as_dict(), ensure_ascii=False, indent=2 if pretty else None)


def render_json(report: PipelineReport, path: Union[str, Path], *, pretty: bool = True) -> Path:
    """Сохраняет отчёт в JSON-файл и возвращает путь к нему."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(report.json(pretty=pretty), encoding="utf-8")
    return p


__all__ = ["PipelineReport", "render_json"]
