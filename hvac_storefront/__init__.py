"""HVAC maintenance-plan storefront: checkout and subscription provisioning"""

__version__ = "1.0.0"
