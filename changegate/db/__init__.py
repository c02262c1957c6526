"""Database layer for ChangeGate."""
