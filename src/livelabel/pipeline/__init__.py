"""Frame-to-label pipeline: shared text slot, classifier, throttler, session."""
