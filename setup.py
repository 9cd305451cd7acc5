from setuptools import setup, find_packages

setup(
    name="raftprobe",
    version="0.1.0",
    description="RPC-driven verification and control harness for replicated tablet clusters",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "msgpack",
        "aiohttp",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
