"""Constants for the project."""

from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent

# ============================================================================
# Data directories
# ============================================================================
DATA_FOLDER = PROJECT_ROOT / "data"
SEQUENCES_FASTA = DATA_FOLDER / "sequences.fa"
PAIRS_CSV = DATA_FOLDER / "pairs.csv"

# ============================================================================
# Results directories
# ============================================================================
RESULTS_FOLDER = PROJECT_ROOT / "results"

# Trained parameters and likelihood history (from train_parameters.py)
PARAMETERS_YAML = RESULTS_FOLDER / "parameters" / "gphmm.yaml"
LOG_LIKELIHOODS_YAML = RESULTS_FOLDER / "parameters" / "log_likelihoods.yaml"

# Scored pairs table (from compute_probability.py)
SCORED_PAIRS_CSV = RESULTS_FOLDER / "scores" / "scored_pairs.csv"

# ============================================================================
# Algorithm parameters
# ============================================================================
DEFAULT_QV = 20.0
MAX_ITERATIONS = 10
PSEUDOCOUNT = 1e-3
NUM_WORKERS = 1

# ============================================================================
# Simulation defaults
# ============================================================================
NUM_PAIRS = 50
MEAN_LENGTH = 100.0
SD_LENGTH = 10.0
RANDOM_SEED = 42

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
