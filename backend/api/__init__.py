# backend/api — HTTP routers and dependency wiring
