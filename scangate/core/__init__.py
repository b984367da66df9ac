"""
Core domain: models, validators, fraud rules and the integrity codec.
"""
