"""
Renovation Back Office
AI module.

Submodules:
    - gateway: LLM Gateway (provider routing, rate-limit retry, usage logging)
    - schemas: JSON fence stripping + typed validation of model output
    - prompts: Offer-generation and price-estimation prompt assembly
    - rag: Keyword retrieval over a tenant's earlier offers
    - assistants.offer_generator: Free text → priced offer pipeline
"""
