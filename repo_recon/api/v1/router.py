from fastapi import APIRouter, Depends

from repo_recon.api.deps import require_api_key
from repo_recon.api.v1.endpoints import admin, auth, cable, comparisons, profile, repositories, root


router = APIRouter()

# The API directory and the progress socket are public.
router.add_api_route("", root.api_root, methods=["GET"], tags=["root"])
router.include_router(cable.router)

for protected in (auth.router, comparisons.router, repositories.router, profile.router, admin.router):
    router.include_router(protected, dependencies=[Depends(require_api_key)])
