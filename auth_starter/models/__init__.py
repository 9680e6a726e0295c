# Re-export Beanie documents
from .user import User, UserAccount, UserFields
from .preference import MarketingPreference, PreferenceAccount, PreferenceFields
