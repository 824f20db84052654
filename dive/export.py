"""JSON export of an image analysis."""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from typing import Any

# Characters escaped inside JSON strings so the output is safe to embed in HTML.
_HTML_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def _json_number(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return int(value)
    return value


def _file_info_dict(info: Any) -> dict[str, Any]:
    if isinstance(info, dict):
        return dict(info)
    to_dict = getattr(info, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(info) and not isinstance(info, type):
        return dataclasses.asdict(info)
    raise TypeError(f"cannot export file info of type {type(info).__name__}")


@dataclass(frozen=True)
class FileReference:
    """A file that wastes space, with how often it appears and its total size."""

    references: int
    size_bytes: int
    path: str

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.references, "sizeBytes": self.size_bytes, "file": self.path}


@dataclass(frozen=True)
class LayerExport:
    """One layer of the image and the files it holds."""

    index: int
    id: str
    digest_id: str
    size_bytes: int
    command: str
    file_list: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "id": self.id,
            "digestId": self.digest_id,
            "sizeBytes": self.size_bytes,
            "command": self.command,
            "fileList": [_file_info_dict(info) for info in self.file_list],
        }


@dataclass(frozen=True)
class ImageExport:
    """Image-wide size and efficiency figures."""

    size_bytes: int
    inefficient_bytes: int
    efficiency_score: float
    inefficient_files: list[FileReference] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sizeBytes": self.size_bytes,
            "inefficientBytes": self.inefficient_bytes,
            "efficiencyScore": _json_number(self.efficiency_score),
            "fileReference": [ref.to_dict() for ref in self.inefficient_files],
        }


@dataclass(frozen=True)
class Export:
    """The exportable form of an analysis: its layers and image summary."""

    layers: list[LayerExport]
    image: ImageExport

    @classmethod
    def from_analysis(cls, analysis: Any) -> "Export":
        """Build an export from an analysis.

        The analysis provides ``layers``, ``inefficiencies``, ``size_bytes``,
        ``efficiency`` and ``wasted_bytes``. Each layer provides ``index``,
        ``id``, ``digest``, ``size``, ``command`` and ``files`` (its file
        infos, children before their parents). Each inefficiency provides
        ``nodes``, ``cumulative_size`` and ``path``.
        """
        layers = [
            LayerExport(
                index=layer.index,
                id=layer.id,
                digest_id=layer.digest,
                size_bytes=layer.size,
                command=layer.command,
                file_list=list(layer.files),
            )
            for layer in analysis.layers
        ]
        references = [
            FileReference(
                references=len(data.nodes),
                size_bytes=int(data.cumulative_size),
                path=data.path,
            )
            for data in reversed(analysis.inefficiencies)
        ]
        image = ImageExport(
            size_bytes=analysis.size_bytes,
            inefficient_bytes=analysis.wasted_bytes,
            efficiency_score=analysis.efficiency,
            inefficient_files=references,
        )
        return cls(layers=layers, image=image)

    def to_dict(self) -> dict[str, Any]:
        return {
            "layer": [layer.to_dict() for layer in self.layers],
            "image": self.image.to_dict(),
        }

    def marshal(self) -> bytes:
        """Render the export as indented UTF-8 JSON."""
        text = json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
        for char, escaped in _HTML_ESCAPES:
            text = text.replace(char, escaped)
        return text.encode("utf-8")