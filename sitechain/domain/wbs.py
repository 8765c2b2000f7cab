from datetime import date
from typing import Any, Dict, Iterator, List, Optional


class WbsError(Exception):
    """Exception raised for malformed WBS input."""

    pass


class WbsArticle:
    """A priced line item of the work breakdown structure."""

    def __init__(
        self,
        code: str,
        description: str,
        unit: str,
        quantity: float,
        unit_price: Optional[float] = None,
    ):
        if not code:
            raise WbsError("Article code cannot be empty")
        if quantity < 0:
            raise WbsError(f"Article {code} has a negative quantity")
        self.code = code
        self.description = description
        self.unit = unit
        self.quantity = quantity
        self.unit_price = unit_price

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WbsArticle":
        return cls(
            code=data["code"],
            description=data.get("description", ""),
            unit=data.get("unit", "Ud"),
            quantity=data.get("quantity", 0),
            unit_price=data.get("unit_price"),
        )

    def __repr__(self):
        return f"WbsArticle({self.code!r}, {self.quantity} {self.unit})"


class WbsSubChapter:
    def __init__(self, code: str, name: str, articles: Optional[List[WbsArticle]] = None):
        self.code = code
        self.name = name
        self.articles = list(articles or [])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WbsSubChapter":
        return cls(
            code=data["code"],
            name=data.get("name", ""),
            articles=[WbsArticle.from_dict(a) for a in data.get("articles", [])],
        )


class WbsChapter:
    def __init__(
        self, code: str, name: str, sub_chapters: Optional[List[WbsSubChapter]] = None
    ):
        self.code = code
        self.name = name
        self.sub_chapters = list(sub_chapters or [])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WbsChapter":
        return cls(
            code=data["code"],
            name=data.get("name", ""),
            sub_chapters=[WbsSubChapter.from_dict(s) for s in data.get("sub_chapters", [])],
        )


class WbsProject:
    """
    A priced WBS together with the project metadata the scheduler needs.

    Chapters contain sub-chapters, which contain articles. The chapter
    grouping is what maps articles to construction phases.
    """

    def __init__(
        self,
        name: str,
        start_date: date,
        chapters: Optional[List[WbsChapter]] = None,
        number_of_floors: int = 1,
    ):
        if number_of_floors < 1:
            raise WbsError("A building has at least one floor")
        self.name = name
        self.start_date = start_date
        self.chapters = list(chapters or [])
        self.number_of_floors = number_of_floors

    def iter_articles(self) -> Iterator[WbsArticle]:
        for chapter in self.chapters:
            for sub_chapter in chapter.sub_chapters:
                for article in sub_chapter.articles:
                    yield article

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WbsProject":
        start = data["start_date"]
        if isinstance(start, str):
            start = date.fromisoformat(start)
        return cls(
            name=data.get("name", "Project"),
            start_date=start,
            chapters=[WbsChapter.from_dict(c) for c in data.get("chapters", [])],
            number_of_floors=data.get("number_of_floors", 1),
        )

    def __repr__(self):
        return (
            f"WbsProject({self.name!r}, start={self.start_date.isoformat()}, "
            f"floors={self.number_of_floors}, chapters={len(self.chapters)})"
        )


class CostBreakdown:
    """Per-unit split of a matched price into materials, labor and machinery."""

    __slots__ = ("materials", "labor", "machinery")

    def __init__(self, materials: float = 0.0, labor: float = 0.0, machinery: float = 0.0):
        self.materials = materials
        self.labor = labor
        self.machinery = machinery

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CostBreakdown":
        data = data or {}
        return cls(
            materials=data.get("materials", 0.0),
            labor=data.get("labor", 0.0),
            machinery=data.get("machinery", 0.0),
        )


class PriceMatch:
    """Result of matching an article against the price database."""

    def __init__(
        self,
        article_code: str,
        unit_cost: float,
        price_code: str = "",
        breakdown: Optional[CostBreakdown] = None,
        confidence: float = 0.0,
    ):
        self.article_code = article_code
        self.unit_cost = unit_cost
        self.price_code = price_code
        self.breakdown = breakdown
        self.confidence = confidence

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PriceMatch":
        breakdown = data.get("breakdown")
        return cls(
            article_code=data["article_code"],
            unit_cost=data.get("unit_cost", 0.0),
            price_code=data.get("price_code", ""),
            breakdown=CostBreakdown.from_dict(breakdown) if breakdown else None,
            confidence=data.get("confidence", 0.0),
        )

    def __repr__(self):
        return f"PriceMatch({self.article_code!r} -> {self.price_code!r}, {self.unit_cost})"
