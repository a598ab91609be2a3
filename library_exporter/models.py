"""
Data model for library items and exported rows.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

# Columns requested from the list item "fields" facet
FIELD_LIST = ("FileLeafRef", "FileRef", "File_x0020_Size", "Created", "Modified")

# Header row of the exported worksheet, in column order
OUTPUT_COLUMNS = (
    "FileName",
    "FileSizeMB",
    "FileExtension",
    "FilePath",
    "CreatedByEmail",
    "CreatedDate",
    "ModifiedByEmail",
    "ModifiedDate",
)

DEFAULT_PAGE_SIZE = 5000


@dataclass
class UserIdentity:
    """Author or editor of a library item"""
    email: Optional[str] = None
    display_name: Optional[str] = None

    @classmethod
    def from_graph(cls, identity_set: Optional[Dict]) -> Optional["UserIdentity"]:
        """
        Build an identity from a Graph identitySet

        Args:
            identity_set: Value of createdBy / lastModifiedBy

        Returns:
            Optional[UserIdentity]: None when the item carries no user identity
        """
        if not identity_set or not isinstance(identity_set, dict):
            return None
        user = identity_set.get('user')
        if not user:
            return None
        return cls(email=user.get('email'), display_name=user.get('displayName'))


@dataclass
class SourceRecord:
    """Metadata of one file in a document library, as returned by a listing call"""
    name: Optional[str]
    path: Optional[str]
    size: Any
    author: Optional[UserIdentity]
    editor: Optional[UserIdentity]
    created: Any
    modified: Any

    @classmethod
    def from_graph_item(cls, item: Dict) -> "SourceRecord":
        """
        Deserialize a Graph listItem into a SourceRecord

        Missing values are kept as None; validation happens in the transformer.

        Args:
            item: Raw listItem JSON object

        Returns:
            SourceRecord: Typed record
        """
        fields = item.get('fields') or {}
        return cls(
            name=fields.get('FileLeafRef'),
            path=fields.get('FileRef'),
            size=fields.get('File_x0020_Size'),
            author=UserIdentity.from_graph(item.get('createdBy')),
            editor=UserIdentity.from_graph(item.get('lastModifiedBy')),
            created=fields.get('Created') or item.get('createdDateTime'),
            modified=fields.get('Modified') or item.get('lastModifiedDateTime'),
        )


@dataclass
class OutputRow:
    """One row of the exported worksheet"""
    file_name: str
    file_size_mb: float
    file_extension: str
    file_path: str
    created_by_email: Optional[str]
    created_date: datetime
    modified_by_email: Optional[str]
    modified_date: datetime

    def as_row(self) -> List[Any]:
        """Return cell values in OUTPUT_COLUMNS order"""
        return [
            self.file_name,
            self.file_size_mb,
            self.file_extension,
            self.file_path,
            self.created_by_email,
            self.created_date,
            self.modified_by_email,
            self.modified_date,
        ]


@dataclass
class TransformResult:
    """Outcome of transforming one record: exactly one of row or error is set"""
    row: Optional[OutputRow] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.row is not None


Page = List[SourceRecord]


@dataclass
class ExportSummary:
    """Counters and outcome of one export run"""
    library: str
    page_size: int
    pages_fetched: int = 0
    records_fetched: int = 0
    rows_written: int = 0
    records_skipped: int = 0
    outcome: str = "pending"
    error: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    page_sizes: List[int] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.outcome == "done"
