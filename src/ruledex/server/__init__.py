"""HTTP API for rule listing, validation reports and load-plan resolution."""
