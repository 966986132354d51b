from setuptools import setup, find_packages

setup(
    name="robolly-generator",
    version="0.1.0",
    description="Render Robolly image and video templates and convert the results locally",
    author="Robolly Generator contributors",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyyaml>=6.0",
        "pillow>=11.2",
        "numpy>=1.24.0",
        "moviepy>=2.0.0",
        "imageio-ffmpeg>=0.5.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "robolly-generator=robolly_generator.cli:main",
        ],
    },
)
