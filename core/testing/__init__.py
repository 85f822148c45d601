"""Helpers shared by the test suites (sample PDFs and throwaway credentials)."""
