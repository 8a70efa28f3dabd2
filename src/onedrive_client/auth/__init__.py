"""OAuth2 implicit-grant authentication."""
