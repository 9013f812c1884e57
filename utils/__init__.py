# Shared async helpers, errors and filesystem utilities
