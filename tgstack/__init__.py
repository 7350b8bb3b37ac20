"""Link, check for cycles and run stacks of interdependent Terraform modules."""

__version__ = "0.1.0"
__all__ = ["__version__"]