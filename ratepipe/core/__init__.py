"""Core Layer: application services that assemble and run the pipeline."""
