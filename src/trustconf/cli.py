#!/usr/bin/env python3
import argparse
import os
import sys

from idpyoidc.configure import create_from_config_file
from idpyoidc.logging import configure_logging

from trustconf.configure import TrustConfConfiguration
from trustconf.download import MetadataDownloader
from trustconf.synthesis import ConfigurationSynthesizer

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    "root": {
        "handlers": ["console"],
        "level": "INFO"
    },
    "loggers": {
        "trustconf": {
            "level": "DEBUG"}
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "default"},
    },
    "formatters": {
        "default": {
            "format": '%(asctime)s %(name)s %(levelname)s %(message)s'}
    }
}


def load_configuration(config_file: str) -> TrustConfConfiguration:
    _dir = os.path.dirname(os.path.abspath(config_file))
    return create_from_config_file(TrustConfConfiguration, filename=config_file, base_path=_dir)


def run(config: TrustConfConfiguration, metadata: bool = False, idp: bool = False,
        insecure: bool = False) -> dict:
    downloader = MetadataDownloader(httpc_params=config.httpc_params,
                                    insecure=insecure or config.insecure_metadata_download)
    synthesizer = ConfigurationSynthesizer(config, downloader=downloader)

    results = {"configuration": synthesizer.generate_configuration_files()}
    if metadata:
        results["metadata"] = synthesizer.generate_metadata_files()
    if idp:
        results["idp"] = synthesizer.generate_idp_configuration_files()
    return results


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Generate IDP/SP configuration from the stored trust relationships")
    parser.add_argument('-c', dest='config', required=True, help="Configuration file")
    parser.add_argument('-k', dest='insecure', action='store_true',
                        help="Do not verify certificates when downloading metadata")
    parser.add_argument('-l', dest='logging', action='store_true')
    parser.add_argument('--metadata', action='store_true', help="Also generate IDP metadata")
    parser.add_argument('--idp', action='store_true', help="Also generate login.config")
    args = parser.parse_args(argv)

    config = load_configuration(args.config)

    if args.logging:
        configure_logging(config=config.logging or LOGGING)

    results = run(config, metadata=args.metadata, idp=args.idp, insecure=args.insecure)

    for name, result in results.items():
        print(f"{name}: {result.summary()}")
        for path in result.written:
            print(f"  wrote {path}")
        for error in result.errors:
            print(f"  error {error.item}: {error.reason}")

    if all(results.values()):
        return 0
    return 1


if __name__ == '__main__':
    sys.exit(main())
