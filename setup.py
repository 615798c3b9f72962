from setuptools import setup, find_packages

setup(
    name='baby_cry_analysis',
    version='0.1',
    description='Chunked cry detection for recorded and live baby monitor media',
    license='new BSD',
    packages=find_packages(exclude=['tests']),
    python_requires='>=3.10',
    install_requires=[
        'numpy',
        'librosa',
        'soundfile',
        'requests',
        'fastapi',
        'python-multipart',
        'uvicorn',
    ],
    extras_require={
        'test': ['pytest', 'httpx'],
    },
    entry_points={
        'console_scripts': [
            'baby-cry-analyze=baby_cry_analysis.pipeline.cli:main',
            'baby-cry-proxy=baby_cry_analysis.pipeline.api:main',
        ],
    },
    include_package_data=True,
    zip_safe=False
)
