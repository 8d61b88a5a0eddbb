"""Tests for taskengine.tools."""
