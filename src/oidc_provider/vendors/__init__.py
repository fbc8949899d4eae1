"""
Vendor presets for identity providers.

Each vendor module exposes a ``VendorPreset`` record plus convenience
functions mirroring the static and discovery-based ways of building it.
"""

from .azure import AZURE_AD, azure_ad_options, create_azure_ad, discover_azure_ad

__all__ = ["AZURE_AD", "azure_ad_options", "create_azure_ad", "discover_azure_ad"]
