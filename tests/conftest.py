import pytest


def _block(url=None, title=None, description=None):
    link = ""
    if url is not None:
        link = f'<div class="yuRUbf"><a href="{url}">{f"<h3>{title}</h3>" if title else ""}</a></div>'
    elif title is not None:
        link = f"<h3>{title}</h3>"
    desc = f'<div class="IsZvec"><span>{description}</span></div>' if description is not None else ""
    return f'<div class="g">{link}{desc}</div>'


def build_serp(items, has_next=True):
    """items: list of url strings or (url, title, description) tuples."""
    blocks = []
    for it in items:
        if isinstance(it, str):
            it = (it, f"Title for {it}", f"About {it}")
        blocks.append(_block(*it))
    nav = '<a id="pnnext" href="/search?q=x&start=100">Next</a>' if has_next else ""
    return (
        "<html><body><div id=\"search\">"
        + "".join(blocks)
        + "</div>"
        + f"<div role=\"navigation\">{nav}</div>"
        + "</body></html>"
    )


@pytest.fixture
def serp():
    return build_serp
