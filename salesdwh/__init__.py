"""
SalesDwh warehouse package.

Bootstraps the layered warehouse (bronze, silver, gold schemas) and loads
raw CRM and ERP CSV extracts into the bronze tier.
"""

__version__ = "0.1.0"
