from setuptools import setup, find_packages
import re

# Read version from payroll_extract/__init__.py
with open('payroll_extract/__init__.py') as f:
    version = re.search(r'^__version__ = ["\']([^"\']+)["\']', f.read(), re.MULTILINE).group(1)

setup(
    name='payroll-extract',
    version=version,
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={
        'payroll_extract': ['definitions/*.yaml'],
    },
    install_requires=[
        'PyPDF2>=3.0.0',
        'PyYAML>=6.0',
        'click>=8.0',
        'pydantic>=2.0.0',
        'rich>=13.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'payroll-extract=payroll_extract.cli.__main__:main',
        ],
    },
    author='Personal',
    description='Pay-stub field extraction with pattern rules, LLM and vision fallbacks.',
    python_requires='>=3.10',
)
