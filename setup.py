"""
Quantitative Cyber-Risk Engine -- Package Setup
References:
    Hubbard, D. W., & Seiersen, R. (2016). How to Measure Anything in
        Cybersecurity Risk. Wiley.
    Freund, J., & Jones, J. (2014). Measuring and Managing Information Risk:
        A FAIR Approach. Butterworth-Heinemann.
    Knuth, D. E. (1997). The Art of Computer Programming, Vol. 2:
        Seminumerical Algorithms. Addison-Wesley.
"""
from setuptools import setup, find_packages
setup(
    name="quantrisk",
    version="1.0.0",
    author="Jose Orlando Bobadilla Fuentes",
    description="Monte Carlo loss simulation, VaR/CVaR and portfolio "
                "aggregation for qualitative cyber-risk scenarios",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.24.0",
        "scipy>=1.10.0",
        "pandas>=2.0.0",
        "matplotlib>=3.7.0",
    ],
    extras_require={
        "dev": ["pytest>=7.4.0", "pytest-cov>=4.1.0"],
    },
    keywords=[
        "monte-carlo", "value-at-risk", "cvar", "cyber-risk",
        "risk-quantification", "fair",
    ],
)
