from setuptools import setup, find_packages

setup(
    name="pybeamrebar",
    version="0.1.0",
    description="Continuous RC beam rebar layout optimizer - backbone and addon bar detailing",
    author="HST.AI Engineering",
    author_email="ha.nguyen@hydrostructai.com",
    packages=find_packages(exclude=("tests", "tests.*", "examples", "examples.*")),
    install_requires=[
        "numpy>=1.24.0",
        "pandas>=2.0.0",
        "pydantic>=2.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
