"""Rating domain logic. Pure functions only; persistence lives in the ledger."""
