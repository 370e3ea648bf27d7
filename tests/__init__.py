"""Tests for the weather station log."""
