from setuptools import setup, find_packages

setup(
    name="fleet-motion-tools",
    version="0.1.0",
    description="Accelerometer motion classification and service-mileage tracking for vehicle fleets",
    packages=find_packages(),
    python_requires=">=3.11",
    install_requires=[
        "numpy>=1.24,<2.0",
        "scipy>=1.10",
        "pandas>=2.0,<3.0",
        "matplotlib>=3.7,<4.0",
        "tqdm>=4.65",
        "zstandard>=0.21",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
        "parquet": ["pyarrow>=12.0"],
    },
    entry_points={
        "console_scripts": [
            "fleet-replay=fleet_motion.replay_session:main",
            "fleet-visualize=fleet_motion.visualize_session:main",
        ],
    },
)
