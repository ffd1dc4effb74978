import random
import sys
import time

from framepyground import DataFrame, ExecutionConfig
from framepyground.compute import ArrowBackend, ExecutionContext

try:
    execution_type = sys.argv[1]
except IndexError:
    execution_type = None

if execution_type == "accelerated":
    context = ExecutionContext(ExecutionConfig(accelerated=True), ArrowBackend())
elif execution_type == "portable":
    context = ExecutionContext.portable()
else:
    print("Execution must be accelerated or portable")
    sys.exit(1)

NUM_ROWS = 1_000_000
rng = random.Random(42)
df = DataFrame(
    {
        "year": [rng.randint(2000, 2024) for _ in range(NUM_ROWS)],
        "geo_count": [rng.random() * 100 for _ in range(NUM_ROWS)],
    },
    context=context,
)

start = time.time()
df.group_by("year").agg(["sum", "mean", "std"])
grouped = time.time()
df.sort_values(["year", "geo_count"])
sorted_ = time.time()

print("GROUP BY:", round(grouped - start, 1), "SORT:", round(sorted_ - grouped, 1))
