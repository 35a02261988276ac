"""
Test pagination metadata.
"""

import pytest
from pydantic import ValidationError

from sqlrepository.repositories import Page


@pytest.mark.unit
class TestPage:

    def test_empty(self):
        page = Page(per_page=10)
        assert page.last_page == 1
        assert page.from_item is None
        assert page.to_item is None
        assert not page.has_more_pages()

    def test_last_page(self):
        page = Page(items=list(range(10)), total=25, per_page=10, current_page=1)
        assert page.last_page == 3
        assert page.from_item == 1
        assert page.to_item == 10
        assert page.has_more_pages()

    def test_final_page(self):
        page = Page(items=list(range(5)), total=25, per_page=10, current_page=3)
        assert page.from_item == 21
        assert page.to_item == 25
        assert not page.has_more_pages()

    @pytest.mark.parametrize("page,expected", [(1, 0), (2, 15), (0, 0), (-3, 0)])
    def test_offset_for(self, page, expected):
        assert Page.offset_for(page, 15) == expected

    def test_per_page_must_be_positive(self):
        with pytest.raises(ValidationError):
            Page(per_page=0)
