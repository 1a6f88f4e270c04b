import pytest

from interVTU.Fields import reset_keywords


@pytest.fixture(autouse=True)
def _clean_registry():
    reset_keywords()
    yield
    reset_keywords()


@pytest.fixture(
    params=[(False, "UInt32"), (True, "UInt32"), (True, "UInt64"), (False, "UInt64")],
    ids=["raw32", "zlib32", "zlib64", "raw64"],
)
def layout(request):
    compress, header_type = request.param
    return {"compress": compress, "header_type": header_type}
