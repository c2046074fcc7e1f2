from .errors import PROBLEM_CT, install_error_handlers

__all__ = ["PROBLEM_CT", "install_error_handlers"]
