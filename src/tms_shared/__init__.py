"""
tms_shared — shared configuration, Supabase client, constants and models
for the TrackMyStartup session service.

Usage:
    from tms_shared.config import settings
    from tms_shared.db import get_supabase_client
    from tms_shared.models.startups import Startup, Founder
    from tms_shared.constants import ROLES, OFFER_STATUSES
"""

__version__ = "0.1.0"
