from setuptools import setup, find_packages
setup(
    name="rental_area_search",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    package_data={"rental_area_search": ["static/*"]},
    python_requires=">=3.10",
    install_requires=[
        "fastapi",
        "python-multipart",
        "pydantic>=2",
        "httpx",
        "parsel",
        "lxml",
        "shapely>=2",
        "mini-racer>=0.12",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'rental-area-search=rental_area_search.__main__:_safe_main'
        ]
    }
)
