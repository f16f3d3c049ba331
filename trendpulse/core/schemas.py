"""Data shapes shared by adapters, the trend core and the stores."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Category(str, Enum):
    """The five source categories."""
    KEYWORD = "keyword"
    SOCIAL = "social"
    CONTENT = "content"
    SHOPPING = "shopping"
    RISING = "rising"


# Storage key of the derived cross-category view. Never a source category.
OVERALL_CATEGORY = "overall"

CATEGORY_LABELS: Dict[str, str] = {
    Category.KEYWORD.value: "뉴스",
    Category.SOCIAL.value: "소셜",
    Category.CONTENT.value: "유튜브",
    Category.SHOPPING.value: "쇼핑",
    Category.RISING.value: "떡상중",
    OVERALL_CATEGORY: "종합",
}

CATEGORY_ICONS: Dict[str, str] = {
    Category.KEYWORD.value: "📰",
    Category.SOCIAL.value: "💬",
    Category.CONTENT.value: "📺",
    Category.SHOPPING.value: "🛒",
    Category.RISING.value: "🚀",
    OVERALL_CATEGORY: "🏆",
}


def parse_category(value: str) -> Category:
    """Parse a category name, raising ValueError for unknown names."""
    try:
        return Category(value.strip().lower())
    except ValueError:
        valid = ", ".join(c.value for c in Category)
        raise ValueError(f"Unknown category '{value}' (expected one of: {valid})") from None


@dataclass(frozen=True)
class RawCandidate:
    """One candidate handed to the core by a source adapter."""
    title: str
    link: Optional[str]
    source_label: str
    snippet: str = ""
    thumbnail: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TrendItem:
    """Normalized trend entry, ranked within its category or the overall list."""
    rank: int
    title: str
    category: Category
    source_name: str = ""
    summary: Optional[str] = None
    source_url: Optional[str] = None
    change_rate: Optional[float] = None
    thumbnail: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_record(self, storage_category: Optional[str] = None) -> Dict[str, Any]:
        """Row shape written by the trend stores."""
        metadata = dict(self.metadata)
        if self.thumbnail and "thumbnail" not in metadata:
            metadata["thumbnail"] = self.thumbnail
        return {
            "category": storage_category or self.category.value,
            "rank": self.rank,
            "title": self.title,
            "summary": self.summary,
            "source_url": self.source_url,
            "source_name": self.source_name,
            "change_rate": self.change_rate,
            "metadata": metadata,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "TrendItem":
        """Rebuild an item from a stored row."""
        metadata = dict(record.get("metadata") or {})
        category = record.get("category")
        if category == OVERALL_CATEGORY:
            category = metadata.get("originalCategory", Category.KEYWORD.value)
        return cls(
            rank=int(record["rank"]),
            title=record["title"],
            category=Category(category),
            source_name=record.get("source_name") or "",
            summary=record.get("summary"),
            source_url=record.get("source_url"),
            change_rate=record.get("change_rate"),
            thumbnail=metadata.get("thumbnail"),
            metadata=metadata,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "rank": self.rank,
            "title": self.title,
            "category": self.category.value,
            "summary": self.summary,
            "sourceUrl": self.source_url,
            "sourceName": self.source_name,
            "changeRate": self.change_rate,
            "thumbnail": self.thumbnail,
            "metadata": self.metadata,
        }


@dataclass
class WeightedTrend:
    """A pooled item carrying its weighted score during the overall ranking."""
    item: TrendItem
    score: float
    original_category: Category

    @property
    def title(self) -> str:
        return self.item.title

    @property
    def rank(self) -> int:
        return self.item.rank


@dataclass
class MergeGroup:
    """Pool indices judged to describe the same topic."""
    indices: List[int]
    representative_index: int
    merged_title: Optional[str] = None
