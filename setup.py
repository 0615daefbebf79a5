from setuptools import setup, find_packages

setup(
    name='pagebridge',
    version='0.1.0',
    license="Apache 2.0",
    description="pagebridge: drive browser documents through a cross-context evaluation bridge",
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        'playwright>=1.40',
        'pydantic>=2.4',
        'click>=8.0',
        'python-dotenv>=1.0',
    ],
    extras_require={
        'tests': [
            'pytest>=7.0',
            'pytest-asyncio>=0.23',
        ],
    },
    entry_points={
        'console_scripts': [
            'pagebridge-probe=pagebridge.command.pagebridge_probe:run',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.9',
)
