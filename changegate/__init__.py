"""ChangeGate: multi-party approval workflow for item changes."""

__version__ = "0.1.0"
