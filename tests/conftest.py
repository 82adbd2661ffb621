import pytest

from pdfs import build_pdf, text_page


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def hello_pdf():
    """Two-page PDF: page 1 says Hello/World, page 2 says Hello."""
    return build_pdf([[text_page("Hello", "World")], [text_page("Hello")]])
