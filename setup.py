from setuptools import find_packages, setup

setup(
    name="presentation-scheduling-backend",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["app", "database"],
    install_requires=[
        "fastapi>=0.110",
        "uvicorn>=0.27",
        "pydantic>=2.5",
        "email-validator>=2.0",
        "sqlalchemy>=2.0",
        "python-jose[cryptography]>=3.3",
        "python-dotenv>=1.0",
        "pyyaml>=6.0",
        "python-multipart>=0.0.9",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "httpx>=0.25",
        ],
    },
    python_requires=">=3.11",
    description="Backend for scheduling, booking and grading presentation slots",
)
