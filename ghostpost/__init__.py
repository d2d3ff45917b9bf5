"""Ghost Post tenancy core: sessions, memberships, permissions and onboarding."""

__version__ = "0.1.0"
