from evaluator.security.package_validator import PackageValidator

__all__ = [
    "PackageValidator",
]
