"""
Swagger/OpenAPI configuration for the JBookMe Barbershop API
"""

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec",
            "route": "/apispec.json",
            "rule_filter": lambda rule: True,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/api/docs",
}

SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "JBookMe Barbershop API",
        "description": "REST API for the barbershop: bookings, barber schedules, social feed, reviews, promotions, invoicing, messaging and notifications",
        "contact": {"email": "support@jbookme.com"},
        "version": "1.0.0",
    },
    "host": "",
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": 'JWT Authorization header using the Bearer scheme. Example: "Authorization: Bearer {token}"',
        }
    },
    "security": [{"Bearer": []}],
    "tags": [
        {"name": "Authentication", "description": "Register, login and current user"},
        {"name": "Appointments", "description": "Booking, rescheduling and cancellation"},
        {"name": "Availability", "description": "Free slots for a barber on a given day"},
        {"name": "Barbers", "description": "Barber directory and self-service schedule"},
        {"name": "Services", "description": "Service catalog"},
        {"name": "Posts", "description": "Social feed posts, likes and comments"},
        {"name": "Reviews", "description": "Reviews and quick ratings"},
        {"name": "Promotions", "description": "Promotions and admin campaigns"},
        {"name": "Invoices", "description": "Invoices, barber payments and accounting"},
        {"name": "Notifications", "description": "In-app notifications, web push and reminders"},
        {"name": "Messages", "description": "Direct messages between users"},
        {"name": "Gallery", "description": "Shop gallery"},
        {"name": "Settings", "description": "Shop settings"},
        {"name": "User", "description": "Signed-in user's profile"},
        {"name": "Admin", "description": "User management, stats and reports"},
        {"name": "Utility", "description": "Health, version and scheduled jobs"},
    ],
    "definitions": {
        "Error": {
            "type": "object",
            "properties": {
                "error": {"type": "string"},
                "message": {"type": "string"},
                "details": {"type": "string"},
            },
        },
        "Success": {
            "type": "object",
            "properties": {
                "success": {"type": "boolean", "example": True},
                "message": {"type": "string"},
            },
        },
        "User": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "name": {"type": "string"},
                "email": {"type": "string"},
                "phone": {"type": "string", "example": "+15551234567"},
                "role": {"type": "string", "enum": ["ADMIN", "BARBER", "STYLIST", "CLIENT"]},
                "gender": {"type": "string", "enum": ["MALE", "FEMALE", "BOTH", "UNISEX"]},
                "image": {"type": "string"},
            },
        },
        "Barber": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "user_id": {"type": "integer"},
                "name": {"type": "string"},
                "bio": {"type": "string"},
                "specialties": {"type": "array", "items": {"type": "string"}},
                "profile_image": {"type": "string"},
                "is_active": {"type": "boolean"},
                "average_rating": {"type": "number", "format": "float", "example": 4.8},
            },
        },
        "Service": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "name": {"type": "string", "example": "Skin Fade"},
                "price": {"type": "number", "format": "float", "example": 35.0},
                "duration": {"type": "integer", "example": 45},
                "gender": {"type": "string", "example": "MALE"},
                "barber_id": {"type": "integer"},
                "is_active": {"type": "boolean"},
            },
        },
        "Appointment": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "client_id": {"type": "integer"},
                "barber_id": {"type": "integer"},
                "service_id": {"type": "integer"},
                "date": {"type": "string", "example": "2025-12-10T14:00:00"},
                "time": {"type": "string", "example": "14:00"},
                "end_time": {"type": "string", "example": "14:45"},
                "status": {
                    "type": "string",
                    "enum": ["PENDING", "CONFIRMED", "COMPLETED", "CANCELLED"],
                },
                "notes": {"type": "string"},
            },
        },
    },
    "paths": {
        "/api/cron/clean-appointments": {
            "get": {
                "tags": ["Utility"],
                "summary": "Delete old completed and cancelled appointments",
                "description": "Scheduled job. Requires the CRON_SECRET as a Bearer token or the x-cron-secret header.",
                "security": [],
                "responses": {
                    "200": {
                        "description": "Cleanup finished",
                        "schema": {
                            "type": "object",
                            "properties": {
                                "success": {"type": "boolean", "example": True},
                                "deleted_count": {"type": "integer", "example": 3},
                                "message": {"type": "string"},
                            },
                        },
                    },
                    "401": {
                        "description": "Missing or wrong cron secret",
                        "schema": {"$ref": "#/definitions/Error"},
                    },
                },
            }
        },
    },
}
