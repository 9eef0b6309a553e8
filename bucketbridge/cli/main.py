"""
bucketbridge CLI - copy images between self-hosted and managed storage.

Connectivity:
    bucketbridge probe                        # Check the self-hosted store answers

Browsing:
    bucketbridge locations                    # Folder/bucket mapping table
    bucketbridge ls self-hosted products      # List a folder
    bucketbridge ls managed product-images    # List a bucket

Migration:
    bucketbridge migrate to-managed products --all
    bucketbridge migrate to-self-hosted blog-images -s cover.png

This creates the 'bucketbridge' command via entry point in pyproject.toml.
"""


def main():
    """Main entry point for the bucketbridge CLI."""
    from bucketbridge.cli.app import cli

    cli()


if __name__ == "__main__":
    main()
