"""
SkillSwap scheduling backend.

The FastAPI application lives in `skill_swap_backend.main`; run it with
`uvicorn src.skill_swap_backend.main:app`.
"""
