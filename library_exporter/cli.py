"""
Command Line Interface for SharePoint Library Exporter.
"""

import argparse
import logging
import sys
from typing import Callable, List, Optional

from .auth import SharePointAuth
from .client import SharePointSession
from .config import Config, ExportConfig, parse_page_size
from .exceptions import ConfigurationError, SharePointError
from .exporter import run_export
from .utils import ensure_extension, print_export_summary, setup_logging

logger = logging.getLogger(__name__)

PROMPTS = {
    'site_url': "Enter the SharePoint site URL: ",
    'library_name': "Enter the document library name: ",
    'log_file': "Enter the log file name: ",
    'output_file': "Enter the output Excel file name: ",
}


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser"""
    parser = argparse.ArgumentParser(
        description="Export file metadata of a SharePoint document library to Excel",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Interactive - prompts for everything not given
  library-exporter

  # Fully specified
  library-exporter export --site-url https://contoso.sharepoint.com/sites/team \\
      --library Documents --log-file export --output documents

  # Show configuration status
  library-exporter config

Environment Variables:
  AZURE_CLIENT_ID          Azure AD App Registration Client ID
  AZURE_TENANT_ID          Azure AD Tenant ID (optional)
  AZURE_CLIENT_SECRET      Azure AD Client Secret (optional)
  AZURE_REDIRECT_URI       OAuth redirect URI (default: http://localhost:8080/callback)
  SHAREPOINT_SITE_URL      SharePoint site URL
  SHAREPOINT_LIBRARY       Document library name
  EXPORT_LOG_FILE          Log file name
  EXPORT_OUTPUT_FILE       Output Excel file name
  EXPORT_PAGE_SIZE         Items per request (default: 5000)
        """
    )

    parser.add_argument(
        '--client-id',
        help='Azure AD App Registration Client ID'
    )
    parser.add_argument(
        '--tenant-id',
        help='Azure AD Tenant ID'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )
    parser.add_argument(
        '--config-file',
        help='Path to a .env style configuration file'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    export_parser = subparsers.add_parser('export', help='Export library metadata to Excel (default)')
    export_parser.add_argument('--site-url', help='SharePoint site URL')
    export_parser.add_argument('--library', dest='library_name', help='Document library name')
    export_parser.add_argument('--log-file', help='Log file name (.txt appended if missing)')
    export_parser.add_argument('--output', dest='output_file', help='Output file name (.xlsx appended if missing)')
    export_parser.add_argument('--page-size', help='Items per request (default: 5000)')

    subparsers.add_parser('config', help='Show configuration status')

    return parser


def resolve_export_config(args, config: Config,
                          input_func: Callable[[str], str] = None) -> ExportConfig:
    """
    Merge environment, command line and interactive answers into an ExportConfig

    Command line values win over the environment; whatever is still missing
    is prompted for. File names get their required extension.
    """
    export_config = config.get_export_config()

    for name in PROMPTS:
        value = getattr(args, name, None)
        if value:
            setattr(export_config, name, value)
    if getattr(args, 'page_size', None):
        export_config.page_size = parse_page_size(args.page_size)

    for name in export_config.missing():
        setattr(export_config, name, prompt_value(PROMPTS[name], input_func))

    export_config.site_url = export_config.site_url.strip()
    export_config.library_name = export_config.library_name.strip()
    export_config.log_file = ensure_extension(export_config.log_file, '.txt')
    export_config.output_file = ensure_extension(export_config.output_file, '.xlsx')
    return export_config


def prompt_value(prompt: str, input_func: Callable[[str], str] = None) -> str:
    """Ask until a non-empty answer is given"""
    input_func = input_func or input
    while True:
        value = input_func(prompt).strip()
        if value:
            return value
        print("A value is required.")


def cmd_export(args, input_func: Callable[[str], str] = None) -> int:
    """Export library metadata"""
    try:
        config = Config(args.config_file)
        export_config = resolve_export_config(args, config, input_func)
    except ConfigurationError as e:
        print(f"❌ Configuration error: {str(e)}")
        return 1

    setup_logging(export_config.log_file, args.log_level)

    try:
        sharepoint_config = config.get_sharepoint_config()
        if args.client_id:
            sharepoint_config.client_id = args.client_id
        if args.tenant_id:
            sharepoint_config.tenant_id = args.tenant_id

        auth = SharePointAuth(
            client_id=sharepoint_config.client_id,
            tenant_id=sharepoint_config.tenant_id,
            redirect_uri=sharepoint_config.redirect_uri,
            client_secret=sharepoint_config.client_secret
        )
        session = SharePointSession(auth)

        summary = run_export(
            session,
            export_config.site_url,
            export_config.library_name,
            export_config.output_file,
            export_config.page_size
        )
    except SharePointError as e:
        logger.error(f"Export aborted: {str(e)}")
        return 1

    print_export_summary(summary, export_config.output_file)
    return 0 if summary.succeeded else 1


def cmd_config(args) -> int:
    """Show configuration status"""
    try:
        config = Config(args.config_file)
        validation_results = config.validate_config()

        print("Configuration Status:")
        print("=" * 50)

        for component, results in validation_results.items():
            status = "✅ Valid" if results['valid'] else "❌ Invalid"
            print(f"{component.title()}: {status}")

            for error in results['errors']:
                print(f"  • {error}")

        return 0

    except ConfigurationError as e:
        print(f"❌ Error: {str(e)}")
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    parser = create_parser()
    argv = list(sys.argv[1:] if argv is None else argv)
    args = parser.parse_args(argv)

    if not args.command:
        args = parser.parse_args(argv + ['export'])

    setup_logging(None, args.log_level)

    try:
        if args.command == 'config':
            return cmd_config(args)
        return cmd_export(args)

    except KeyboardInterrupt:
        print("\n⏹️  Operation cancelled by user")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {str(e)}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
