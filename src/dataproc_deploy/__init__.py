"""Submit Spark jobs to Google Cloud Dataproc clusters."""

__version__ = "0.1.0"
