"""
WSGI Entry Point for the Location Service.
"""

from location_service.app import create_app

application = create_app()
app = application

if __name__ == "__main__":
    application.run()
