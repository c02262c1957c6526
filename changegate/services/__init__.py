"""Services around the approval engine: notifications, users and diffs."""
