"""Setup configuration for pyDENTIST package"""

from setuptools import setup, find_packages

setup(
    name="pydentist",
    version="0.1.0",
    author="pyDENTIST Development Team",
    description="Python implementation of DENTIST for detecting errors in GWAS summary statistics, with Numba JIT acceleration",
    long_description=open("README.md").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["pydentist", "pydentist.*"]),
    install_requires=[
        "numpy>=1.19.0",
        "scipy>=1.6.0",
        "pandas>=1.2.0",
        "h5py>=3.0.0",
        "matplotlib>=3.3.0",
        "seaborn>=0.11.0",
        "numba>=0.50.0",
        "joblib>=1.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=6.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "pydentist=pydentist.cli.main:main",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
    ],
)
