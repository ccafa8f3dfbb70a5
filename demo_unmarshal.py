"""
Demo: Check the environment for the example service config, then bind it.
"""

from envbind import EnvBindError, mapping_lookup, unmarshal
from envbind.examples import ServiceConfig, build_example_environment
from envbind.report import check_environment
from envbind.serialization import descriptors_to_yaml, report_to_yaml


def main():
    lookup = mapping_lookup(build_example_environment())

    print("=" * 70)
    print("SCHEMA")
    print("=" * 70)
    print(descriptors_to_yaml(ServiceConfig))

    print("=" * 70)
    print("ENVIRONMENT REPORT")
    print("=" * 70)
    report = check_environment(ServiceConfig, lookup)
    print(report_to_yaml(report))

    config = ServiceConfig()
    try:
        unmarshal(config, lookup)
    except EnvBindError as e:
        print(f"Bind failed: {e}")
        return

    print("=" * 70)
    print("BOUND CONFIG")
    print("=" * 70)
    print(f"  Port:          {config.port}")
    print(f"  Debug:         {config.debug}")
    print(f"  Allowed hosts: {config.allowed_hosts}")
    print(f"  Region:        {config.region}")
    print(f"  DB pool size:  {config.database.pool_size}")


if __name__ == "__main__":
    main()
