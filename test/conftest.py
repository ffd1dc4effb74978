import pytest

from framepyground.compute.backend import ArrowBackend
from framepyground.compute.dispatch import ExecutionContext
from framepyground.config import ExecutionConfig


@pytest.fixture(params=["accelerated", "portable"])
def context(request):
    """Run the test once on the Arrow backend and once in plain Python."""
    if request.param == "accelerated":
        return ExecutionContext(
            ExecutionConfig(accelerated=True, min_accelerated_rows=0), ArrowBackend()
        )
    return ExecutionContext.portable()
