"""Command-line interface for the SageMaker cost monitor."""
