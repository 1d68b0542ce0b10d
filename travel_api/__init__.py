"""
Travel Journal API: accounts, travels with points and photos, and a public feed.
"""
