"""
Run the Location Service development server.

    python -m location_service
"""

import logging

from location_service.app import create_app


def main():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    application = create_app()
    config = application.config

    logger = logging.getLogger('location_service')
    logger.info('Location Tracker server starting')
    logger.info(f"Listening on http://{config['HOST']}:{config['PORT']}")
    logger.info(f"API key: {'enabled' if config.get('API_KEY') else 'disabled (dev mode)'}")
    logger.info(f"Environment: {config['ENV_NAME']}")

    application.run(host=config['HOST'], port=config['PORT'], debug=config.get('DEBUG', False))


if __name__ == '__main__':
    main()
