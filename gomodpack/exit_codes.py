"""
Standard exit codes for gomodpack commands.

Following Unix/POSIX conventions for command-line tools.
"""
from .errors import ErrorKind, PackError

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
DIRTY_WORK_COPY = 64     # Working copy has uncommitted changes
NOT_A_REPOSITORY = 65    # Module folder is not in a recognized repository
PROCESS_ERROR = 66       # git or go failed
CONFIG_ERROR = 67        # Configuration file error
IO_ERROR = 68            # Cache folder or archive I/O failed
DATA_ERROR = 70          # Data format or validation error
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for packaging error kinds
ERROR_KIND_EXIT_CODES = {
    ErrorKind.DIRTY_WORKING_COPY: DIRTY_WORK_COPY,
    ErrorKind.NOT_A_REPOSITORY: NOT_A_REPOSITORY,
    ErrorKind.UNRECOGNIZED_REPOSITORY: NOT_A_REPOSITORY,
    ErrorKind.PROCESS_FAILURE: PROCESS_ERROR,
    ErrorKind.MODULE_IDENTITY: PROCESS_ERROR,
    ErrorKind.EMPTY_VERSION: DATA_ERROR,
    ErrorKind.MODULE_ZIP: DATA_ERROR,
    ErrorKind.SOURCE_ARCHIVE_UNREADABLE: IO_ERROR,
    ErrorKind.IO_FAILURE: IO_ERROR,
    ErrorKind.CONFIG: CONFIG_ERROR,
}


def get_exit_code_for_exception(exc: BaseException) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, PackError):
        return ERROR_KIND_EXIT_CODES.get(exc.kind, GENERAL_ERROR)
    if isinstance(exc, KeyboardInterrupt):
        return INTERRUPTED
    if isinstance(exc, OSError):
        return IO_ERROR
    return GENERAL_ERROR

