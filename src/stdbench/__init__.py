"""stdbench — A/B benchmark a toolchain's standard library tests across two roots."""

__version__ = "0.1.0"
