"""Tests for taskengine.platform."""
