"""
Renovation Back Office
AI Assistants package.

Assistants:
    - offer_generator: Requirement text → priced Work/Requirement/Offer chain
"""
