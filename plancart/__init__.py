"""PlanCart - shopping cart and pricing engine for a house-plan storefront."""

__version__ = "0.1.0"
