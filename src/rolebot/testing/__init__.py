"""In-memory stand-ins for Discord used by the test-suite."""
