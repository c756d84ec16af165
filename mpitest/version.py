# mpitest/version.py
# Harness constants. Single authoritative definition.
# Referenced by the driver, the aggregation protocol, and the command line.

HARNESS_VERSION: str = "1.0.0"

# Size in bytes of one failure message on the wire, NUL terminator included.
# Longer messages are truncated to FAIL_MESSAGE_SIZE - 1 bytes.
FAIL_MESSAGE_SIZE: int = 1024

# Rank (within each per-test sub-group) that gathers and prints the report.
ROOT_RANK: int = 0

# Environment variable read by mpitest.driver.main() for the log level.
LOG_LEVEL_ENV: str = "MPITEST_LOG_LEVEL"
