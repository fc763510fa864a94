"""
Bronze tier loading: manifest, bulk loader, load log and the batch orchestrator.
"""
