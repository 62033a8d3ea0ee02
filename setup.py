from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = f.read().splitlines()

setup(
    name="crossbook",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest",
            "responses",
        ],
    },
    entry_points={
        "console_scripts": [
            "crossbook=crossbook.cli_module.cli:main",
        ],
    },
)
