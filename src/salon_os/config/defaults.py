"""
Default configuration values.
"""
import os

# Base paths
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../../.."))
DATA_DIR = os.path.join(BASE_DIR, "data")

# Database defaults
DEFAULT_DB_PATH = os.path.join(DATA_DIR, "salon_stock.db")
DEFAULT_CATALOG_PATH = os.path.join(DATA_DIR, "catalog.yaml")

# Volumes are tracked as Decimal, quantized to this step (ml)
DEFAULT_VOLUME_QUANTUM_ML = "0.001"

# Stock status
DEFAULT_CRITICAL_RATIO = "0.5"  # critical at or below half the min threshold
DEFAULT_EMIT_RESOLVED_ALERTS = True

# Commit path
DEFAULT_LOCK_TIMEOUT_S = 5.0
