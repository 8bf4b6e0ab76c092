"""Tests for the Routine Cadence integration."""
