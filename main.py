from app.api.admin.users import admin_users_bp
from app.api.admin_dashboard.admin_analytics import admin_analytics_bp
from app.api.admin_dashboard.admin_reports import admin_reports_bp
from app.api.admin_dashboard.admin_system import admin_system_bp
from app.api.barber.profile import barber_profile_bp
from app.api.barber.schedule import barber_schedule_bp
from app.api.barbers.barbers import barbers_bp
from app.api.barbers.services import services_bp
from app.api.booking.appointments import appointments_bp
from app.api.booking.availability import availability_bp
from app.api.communication.messaging import messaging_bp
from app.api.communication.notifications import notifications_bp, push_bp
from app.api.communication.twilio_sms import twilio_bp
from app.api.customer.details import user_profile_bp
from app.api.employee.employee_app import employeesapp_bp
from app.api.gallery.gallery import gallery_bp
from app.api.marketing.promotions import admin_promotions_bp, promotions_bp
from app.api.payments.invoices import invoices_bp
from app.api.reviews.reviews import reviews_bp
from app.api.social.comments import comments_bp
from app.api.social.posts import posts_bp
from app.routes.auth import auth_bp
from flask import Flask
from flask_cors import CORS
from dotenv import load_dotenv
from flasgger import Swagger
from swagger__config import SWAGGER_CONFIG, SWAGGER_TEMPLATE
import os

load_dotenv()
from app.config import Config  # noqa: E402
from app.extensions import db  # noqa: E402
from app.scheduler import init_scheduler  # noqa: E402


def create_app():
    print("Starting create_app()")
    app = Flask(__name__)
    print(f"Flask app created: {app}")
    try:
        print("Loading config...")
        app.config.from_object(Config)
        print("Config loaded successfully")
        print(f"Config items: {len(app.config)} items loaded")

        print("Initializing CORS...")
        CORS(app)
        print("CORS initialized")

        print("Initializing database...")
        db.init_app(app)
        print("Database initialized")
        print("Initializing Swagger/OpenAPI documentation...")
        # Determine host based on environment
        host = os.environ.get("API_HOST", "127.0.0.1:5000")
        swagger_template = SWAGGER_TEMPLATE.copy()
        swagger_template["host"] = host

        Swagger(app, config=SWAGGER_CONFIG, template=swagger_template)
        print("Swagger initialized - Access at /api/docs")
        print("Registering blueprints...")

        blueprints = [
            auth_bp,
            appointments_bp,
            availability_bp,
            barber_schedule_bp,
            barber_profile_bp,
            barbers_bp,
            services_bp,
            posts_bp,
            comments_bp,
            promotions_bp,
            admin_promotions_bp,
            reviews_bp,
            invoices_bp,
            messaging_bp,
            notifications_bp,
            push_bp,
            twilio_bp,
            admin_users_bp,
            admin_reports_bp,
            admin_system_bp,
            admin_analytics_bp,
            gallery_bp,
            user_profile_bp,
            employeesapp_bp,
        ]

        for bp in blueprints:
            app.register_blueprint(bp)
            print(f"  ✓ {bp.name} registered")

        print("All blueprints registered successfully")
        print("Adding root route...")

        @app.route("/")
        def home():
            """
            Root endpoint - API status
            ---
            tags:
              - Utility
            responses:
              200:
                description: API is running
                schema:
                  type: object
                  properties:
                    status:
                      type: string
                    message:
                      type: string
                    docs_url:
                      type: string
            """
            try:
                print("Root route accessed")
                return {"status": "ok", "message": "Backend is running!"}, 200
            except Exception as e:
                print(f"Error in root route: {e}")
                import traceback

                traceback.print_exc()
                return {"error": str(e)}, 500

        print("Root route added")

        print("Checking registered routes:")
        route_count = 0
        for rule in app.url_map.iter_rules():
            route_count += 1
            print(
                f"   Route {route_count}: {rule.endpoint} -> {rule.rule} [{list(rule.methods)}]"
            )  # noqa: E501
        print(f"Total routes registered: {route_count}")

        if not app.config.get("TESTING"):
            print("Starting background scheduler...")
            init_scheduler(app)

    except Exception as e:
        print(f"Error during app creation: {e}")
        print(f"Error type: {type(e)}")
        import traceback

        print(f"Full traceback: {traceback.format_exc()}")
        raise

    print("create_app() completed successfully")
    print(f"Returning app: {app}")
    return app


app = create_app()
print(f"App created: {app.name} (debug={app.debug})")


if __name__ == "__main__":
    # Local run; DATABASE_URL (or MYSQL_PUBLIC_URL) comes from .env, e.g.
    #       mysql+pymysql://<USER>:<PASSWORD>@<HOST>:<PORT>/jbookme
    port = int(os.environ.get("PORT", 5000))
    app.run(
        host="0.0.0.0", port=port, debug=os.environ.get("FLASK_ENV") != "production"
    )
