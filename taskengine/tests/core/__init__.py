"""Tests for taskengine.core."""
