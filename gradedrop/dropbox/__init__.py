"""Submissions, fingerprints and the ledger the dropbox writes to."""
