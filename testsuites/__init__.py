"""
Test suites for resilient_api.

Importable as a package so suites can share `testsuites.mock_transport`.
"""
