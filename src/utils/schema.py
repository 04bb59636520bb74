# schema.py
"""
Schema definition for the customer feature table, target and predictors.
"""

from utils.constants import BASE_YEAR, TARGET_YEAR, MONTHS

_Y = BASE_YEAR

EXISTED_COL = f"existed_in_{_Y}"
BASE_SALES_COL = f"total_sales_{_Y}"
TARGET_COL = f"total_sales_{TARGET_YEAR}"

SCALAR_FEATURE_COLS = [
    BASE_SALES_COL,
    f"line_items_{_Y}",
    f"orders_{_Y}",
    f"total_quantity_{_Y}",
    f"max_line_amount_{_Y}",
    f"min_line_amount_{_Y}",
]

ORDER_FEATURE_COLS = [
    f"avg_order_amount_{_Y}",
    f"max_order_amount_{_Y}",
    f"min_order_amount_{_Y}",
    f"avg_order_max_line_{_Y}",
    f"avg_order_min_line_{_Y}",
    f"avg_order_lines_{_Y}",
]

MONTHLY_SALES_COLS = [f"sales_{_Y}_m{m:02d}" for m in MONTHS]
MONTHLY_ORDER_COLS = [f"orders_{_Y}_m{m:02d}" for m in MONTHS]

# Every numeric column derived from base-year activity; the only columns the
# assembler may fill with a structural zero
BASE_YEAR_NUMERIC_COLS = (
    SCALAR_FEATURE_COLS + ORDER_FEATURE_COLS + MONTHLY_SALES_COLS + MONTHLY_ORDER_COLS
)

FEATURE_TABLE_COLS = BASE_YEAR_NUMERIC_COLS + [EXISTED_COL]

BENCHMARK_FEATURE_COLS = [BASE_SALES_COL]
