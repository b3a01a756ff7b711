"""
Third-party integrations: Google OAuth, ImgBB uploads, Sentry.
"""
