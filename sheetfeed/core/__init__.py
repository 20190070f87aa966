"""Core domain: models, errors, configuration, logging and the snapshot pipeline."""
