from setuptools import setup, find_packages

setup(
    name="plant-litter-tracker",
    version="1.0.0",
    description="Local-first plant and litter location tracker with a REST location service",
    packages=find_packages(include=["location_service*", "location_client*"]),
    python_requires=">=3.10",
    install_requires=[
        "Flask>=3.0.0",
        "Flask-SQLAlchemy>=3.1.0",
        "SQLAlchemy>=2.0.0",
        "Flask-Migrate>=4.0.0",
        "Flask-Cors>=4.0.0",
        "requests>=2.31.0",
        "urllib3>=2.0.0",
    ],
    extras_require={
        "postgres": [
            "psycopg2-binary>=2.9.0",
        ],
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
            "pylint>=2.17.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "location-tracker=location_client.cli:main",
            "location-service=location_service.__main__:main",
        ]
    },
)
