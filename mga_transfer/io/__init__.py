"""Run configuration loading and output artifact writing."""
from mga_transfer.io.config import RunConfig, default_run_config, load_run_config
