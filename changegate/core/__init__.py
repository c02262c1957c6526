"""Approval engine core: rules, request workflow and errors."""
