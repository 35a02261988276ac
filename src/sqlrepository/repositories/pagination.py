import math
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class Page(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    items: List[Any] = Field(default_factory=list, description="Entities on this page")
    total: int = Field(0, description="Number of entities matching the query")
    per_page: int = Field(..., gt=0)
    current_page: int = Field(1, ge=1)
    page_name: str = "page"

    @property
    def last_page(self) -> int:
        return max(int(math.ceil(self.total / self.per_page)), 1)

    @property
    def from_item(self) -> Optional[int]:
        if not self.items:
            return None
        return (self.current_page - 1) * self.per_page + 1

    @property
    def to_item(self) -> Optional[int]:
        if not self.items:
            return None
        return self.from_item + len(self.items) - 1

    def has_more_pages(self) -> bool:
        return self.current_page < self.last_page

    @staticmethod
    def offset_for(page: int, per_page: int) -> int:
        return (max(page, 1) - 1) * per_page
