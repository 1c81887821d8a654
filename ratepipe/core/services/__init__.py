"""Application services: the job source and the pipeline lifecycle owner."""
