"""Core logic for indicator calculation, signal classification, sizing and the ledger.

This package contains pure business logic with no I/O dependencies
(no network, file system or event loop state). The stateful services
in scalpbot/ drive it on every tick.
"""
