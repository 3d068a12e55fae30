# Schemas package init: Pydantic API contracts (workspace, note, common)
