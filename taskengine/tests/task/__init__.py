"""Tests for taskengine.task."""
