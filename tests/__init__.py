"""Tests for the gphmm package."""
