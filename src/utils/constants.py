# utils/constants.py

SEED = 42

# Fiscal years: features come from BASE_YEAR, the target from TARGET_YEAR
BASE_YEAR = 2012
TARGET_YEAR = 2013

# Schema constants used by data_loader and others
CUSTOMER_COL = "contact_id"
ORDER_COL = "order_id"
DATE_COL = "purchase_date"
PRODUCT_COL = "product_id"
QUANTITY_COL = "quantity"
SALES_COL = "sales_amount"
DATE_FORMAT = "%Y-%m-%d"

REQUIRED_COLUMNS = [CUSTOMER_COL, ORDER_COL, DATE_COL, PRODUCT_COL, QUANTITY_COL, SALES_COL]
NUMERIC_COLS = [QUANTITY_COL, SALES_COL]

# Rows with sales_amount <= 0: "drop" or "keep"
NONPOSITIVE_SALES_POLICIES = ("drop", "keep")
DEFAULT_NONPOSITIVE_SALES_POLICY = "drop"

# Partitioning
PARTITION_COL = "partition"
TRAIN, SELECTION, HOLDOUT = "train", "selection", "holdout"
TRAIN_SHARE = 0.60
SELECTION_SHARE_OF_REST = 0.75
N_STRATA = 5

# Segments
SEGMENT_FULL = "full"
SEGMENT_RETURNING = "returning"

# Training
N_FOLDS = 10
BAGGING_N_ESTIMATORS = 250

# Evaluation: population RMSE (denominator n)
RMSE_DDOF = 0

CALIBRATION_EDGES = [0, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000, float("inf")]

MONTHS = list(range(1, 13))
