"""
Test suite for tw-sync.

This package contains:
- Unit tests for transcoders, the record synchronizer and the sync engine
- Store adapter tests with the task binary and EventKit mocked
- Watcher and CLI tests
"""
