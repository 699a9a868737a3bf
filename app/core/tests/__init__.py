"""Tests for core infrastructure: exceptions, the HTTP client and health check."""
