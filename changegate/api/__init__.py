"""HTTP API for ChangeGate."""
