"""Tests for openwork: providers, planning, progress tracking and plan mode."""
