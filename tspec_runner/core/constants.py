# SPDX-License-Identifier: MPL-2.0
# Copyright (c) 2025 Daniel Schmidt

"""Core constants shared across the tspec-runner engine."""

# Concurrency limits
DEFAULT_CONCURRENCY = 5
DEFAULT_CONCURRENCY_PER_TYPE = 3
DEFAULT_SUITE_CONCURRENCY = 5

# Assertion reporting
FILE_CONTENT_DISPLAY_LIMIT = 100  # characters shown for file_read actual values
DEFAULT_ASSERTION_OPERATOR = "exists"

# Protocols recognised in spec files, in detection order
SUPPORTED_PROTOCOLS = ("http", "grpc", "graphql", "websocket", "web")

# File extensions
TEST_FILE_SUFFIX = ".tspec"
SUITE_FILE_SUFFIX = ".tsuite"

# HTTP runner
DEFAULT_HTTP_TIMEOUT = 30.0  # seconds
DEFAULT_HTTP_SCHEME = "http"
DEFAULT_HTTP_HOST = "localhost"
DEFAULT_PORTS = ("80", "443")

# Exit codes used by the CLI
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_PARSE_ERROR = 2
EXIT_ERROR = 255
