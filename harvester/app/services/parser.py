from __future__ import annotations
from typing import Optional
from bs4 import BeautifulSoup
from bs4.element import Tag
from ..models import PageResult, ResultItem

# Coupled to Google's result markup; one block per organic listing
BLOCK_SELECTOR = 'div[class="g"]'
TITLE_SELECTOR = "h3"
DESCRIPTION_SELECTOR = "div.IsZvec"
LINK_SELECTOR = "div.yuRUbf > a"
NEXT_SELECTOR = "a#pnnext"


def _text(el: Optional[Tag]) -> Optional[str]:
    if el is None:
        return None
    return el.get_text().strip()


def parse_page(html: str, first_position: int = 1) -> PageResult:
    """
    Extract listings in page order. Missing title/description/link leave the
    field as None; the block is still returned and numbered.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    items = []
    for idx, block in enumerate(soup.select(BLOCK_SELECTOR)):
        link = block.select_one(LINK_SELECTOR)
        items.append(ResultItem(
            position=first_position + idx,
            title=_text(block.select_one(TITLE_SELECTOR)),
            description=_text(block.select_one(DESCRIPTION_SELECTOR)),
            url=link.get("href") if link is not None else None,
        ))
    return PageResult(items=items, has_next=soup.select_one(NEXT_SELECTOR) is not None)
