"""Core domain package for tweetrouter.

Core contains rule matching, batch routing and seeding logic without any
storage or UI-specific code, keeping the business logic portable.
"""
