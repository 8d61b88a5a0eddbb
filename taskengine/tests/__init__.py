"""Test suite for taskengine.

Covers the core (errors, settings), the platform capabilities, the tool
registry with its sandbox and approval policy, and the task lifecycle.
"""

import logging

# Configure test logging
logging.basicConfig(level=logging.WARNING)  # Reduce noise during tests
