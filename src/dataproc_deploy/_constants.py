"""Shared constants for dataproc-deploy."""

# Environment variable holding the fallback GCP project when project_id is unset
DEFAULT_PROJECT_ENV = "GOOGLE_PROJECT_ID"

# Regional Dataproc control-plane endpoint
DATAPROC_ENDPOINT_TEMPLATE = "{region}-dataproc.googleapis.com:443"

# Output directory; journal/ holds one deploy-history JSONL file per target.
DEFAULT_OUTPUT_DIR = "./dataproc-deploy-output"
