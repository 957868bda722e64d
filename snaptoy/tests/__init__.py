"""Tests for the SnapToy client."""
