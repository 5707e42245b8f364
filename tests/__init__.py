"""
Tests package - Unit test suite for the overcommit webhook.

Contains:
- unit/: Unit tests for individual components
"""
