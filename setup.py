from setuptools import setup, find_packages

setup(
    name="dflor",
    version="1.0.0",
    packages=find_packages(include=["dflor", "dflor.*"]),
    install_requires=[
        "django>=5.1",
        "djangorestframework",
        "drf-spectacular",
        "djangorestframework-simplejwt",
        "psycopg2-binary",
        "python-decouple",
        "requests",
        "stripe",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-django",
        ],
    },
    python_requires=">=3.11",
)
