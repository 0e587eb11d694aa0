"""
Edit operations — the strict tagged union the engine works with.

Each operation type is a dataclass carrying only the fields its type needs.
Lenient external input is mapped onto these shapes by ``normalizer`` and
checked by ``validator`` before ``operation_from_dict`` is called.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import ClassVar, Optional


@dataclass
class EditOperation:
    """Base class: every operation targets one relative ``path``."""
    path: str

    TYPE: ClassVar[str] = ""
    REQUIRED: ClassVar[tuple[str, ...]] = ()
    # Operations that need the file to exist before they run
    NEEDS_FILE: ClassVar[bool] = True

    @property
    def type(self) -> str:
        return self.TYPE

    @property
    def target(self) -> Optional[str]:
        """The search/anchor text this operation resolves, if any."""
        return None

    def to_dict(self) -> dict:
        data = {"type": self.TYPE}
        data.update(asdict(self))
        return data


@dataclass
class Replace(EditOperation):
    search: str = ""
    replace: str = ""

    TYPE: ClassVar[str] = "replace"
    REQUIRED: ClassVar[tuple[str, ...]] = ("search", "replace")

    @property
    def target(self) -> Optional[str]:
        return self.search


@dataclass
class ReplaceAll(Replace):
    TYPE: ClassVar[str] = "replace_all"


@dataclass
class InsertAfter(EditOperation):
    anchor: str = ""
    content: str = ""

    TYPE: ClassVar[str] = "insert_after"
    REQUIRED: ClassVar[tuple[str, ...]] = ("anchor", "content")

    @property
    def target(self) -> Optional[str]:
        return self.anchor


@dataclass
class InsertBefore(InsertAfter):
    TYPE: ClassVar[str] = "insert_before"


@dataclass
class InsertAtLine(EditOperation):
    line: int = 1
    content: str = ""

    TYPE: ClassVar[str] = "insert_at_line"
    REQUIRED: ClassVar[tuple[str, ...]] = ("line", "content")


@dataclass
class Create(EditOperation):
    content: str = ""
    overwrite: bool = False

    TYPE: ClassVar[str] = "create"
    REQUIRED: ClassVar[tuple[str, ...]] = ("content",)
    NEEDS_FILE: ClassVar[bool] = False


@dataclass
class Append(EditOperation):
    content: str = ""

    TYPE: ClassVar[str] = "append"
    REQUIRED: ClassVar[tuple[str, ...]] = ("content",)


@dataclass
class Prepend(Append):
    TYPE: ClassVar[str] = "prepend"


@dataclass
class DeleteFile(EditOperation):
    TYPE: ClassVar[str] = "delete_file"


@dataclass
class DeleteMatch(EditOperation):
    search: str = ""

    TYPE: ClassVar[str] = "delete_match"
    REQUIRED: ClassVar[tuple[str, ...]] = ("search",)

    @property
    def target(self) -> Optional[str]:
        return self.search


@dataclass
class DeleteLines(EditOperation):
    start_line: int = 1
    end_line: int = 1

    TYPE: ClassVar[str] = "delete_lines"
    REQUIRED: ClassVar[tuple[str, ...]] = ("start_line", "end_line")


OPERATION_TYPES: dict[str, type[EditOperation]] = {
    cls.TYPE: cls
    for cls in (
        Replace, ReplaceAll, InsertAfter, InsertBefore, InsertAtLine,
        Create, Append, Prepend, DeleteFile, DeleteMatch, DeleteLines,
    )
}

# Field name -> expected primitive type, for validation
TEXT_FIELDS = ("search", "replace", "anchor", "content")
LINE_FIELDS = ("line", "start_line", "end_line")
# Fields that may not be empty strings
NON_EMPTY_FIELDS = ("search", "anchor")


def operation_from_dict(data: dict) -> EditOperation:
    """Build the typed operation for a canonical, already-validated dict."""
    cls = OPERATION_TYPES[data["type"]]
    kwargs = {"path": data["path"]}
    for name in cls.REQUIRED:
        kwargs[name] = data[name]
    if cls is Create and data.get("overwrite") is not None:
        kwargs["overwrite"] = bool(data["overwrite"])
    return cls(**kwargs)


@dataclass
class EditRequest:
    """A batch of canonical operation dicts plus caller-owned metadata."""
    edits: list = field(default_factory=list)
    summary: Optional[str] = None
    commit_message: Optional[str] = None
