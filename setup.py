from setuptools import setup, find_packages

setup(
    name="gnssobs",
    version="1.0.0-rc1",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=["pandas", "numpy"],
    extras_require={"test": ["pytest"]},
    description="GPS observation reader and validator for RINEX 2.x and 3.x/4.x observation files",
    python_requires=">=3.9",
)
