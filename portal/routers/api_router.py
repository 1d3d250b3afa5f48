from fastapi import APIRouter
from portal.routers import (
    auth, users, inductions, user_inductions, departments, reference_data,
    certificates, content, contact, files, email_settings, user_qualifications, cron
)

# Routers are aggregated here; main.py only imports this hub.
api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(users.router, tags=["Users"])
api_router.include_router(inductions.router, tags=["Inductions"])
api_router.include_router(user_inductions.router, tags=["User Inductions"])
api_router.include_router(departments.router, tags=["Departments"])
api_router.include_router(reference_data.locations_router, tags=["Reference Data"])
api_router.include_router(reference_data.positions_router, tags=["Reference Data"])
api_router.include_router(reference_data.certificate_types_router, tags=["Reference Data"])
api_router.include_router(certificates.router, tags=["Certificates"])
api_router.include_router(content.router, tags=["Website Content"])
api_router.include_router(contact.router, tags=["Contact"])
api_router.include_router(files.router, tags=["Files"])
api_router.include_router(email_settings.router, tags=["Email Settings"])
api_router.include_router(user_qualifications.router, tags=["Qualifications"])
api_router.include_router(cron.router, tags=["Scheduled Jobs"])
