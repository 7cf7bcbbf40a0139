#!/usr/bin/env python3
"""
aws_s3_bucket_purger.py

Purpose:
  Find S3 buckets whose name contains a given string (case-insensitive) and
  PERMANENTLY delete them. Non-empty buckets are emptied first: every object,
  every object version and every delete marker is removed before the bucket
  itself is deleted.

Features:
  - Case-insensitive substring match on bucket name
  - Interactive confirmation (type YES) before anything is deleted
  - Handles versioned, suspended and never-versioned buckets
  - Batch deletion (DeleteObjects) one listing page at a time
  - A failing bucket is reported and the run moves on to the next one
  - JSON summary with --json

Safety:
  - Nothing is deleted unless the operator types YES (uppercase) at the prompt.
    --yes skips the prompt for unattended runs; use with care.
  - Deletion is irreversible. There is no undo.

Permissions:
  - s3:ListAllMyBuckets
  - s3:ListBucketVersions
  - s3:DeleteObject, s3:DeleteObjectVersion
  - s3:DeleteBucket

Examples:
  python aws_s3_bucket_purger.py test-env
  python aws_s3_bucket_purger.py --profile sandbox --region eu-west-1 scratch
  python aws_s3_bucket_purger.py --yes --json ci-artifacts-pr-

Exit Codes:
  0 success, nothing matched, or cancelled
  1 listing failed or at least one bucket could not be deleted
  2 usage error
  130 interrupted
"""
import argparse
import boto3
import json
import sys
from typing import Any, Dict, Iterator, List, Optional, Tuple
from botocore.exceptions import BotoCoreError, ClientError

SEPARATOR = "-" * 57
CONFIRM_TOKEN = "YES"
# DeleteObjects accepts at most 1000 keys per request
DELETE_BATCH = 1000


def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(
        description="Delete S3 buckets whose names contain FILTER, including all objects, versions and delete markers",
        epilog="WARNING: this PERMANENTLY DELETES all objects and versions within matching buckets. This cannot be undone.",
    )
    p.add_argument("filter", help="Case-insensitive string to match against bucket names")
    p.add_argument("--profile", help="AWS profile name")
    p.add_argument("--region", help="AWS region for the S3 client")
    p.add_argument("--yes", action="store_true", help="Skip the interactive YES confirmation")
    p.add_argument("--json", action="store_true", help="Print a JSON summary at the end")
    args = p.parse_args(argv)
    if not args.filter:
        p.error("missing input parameter for filtering buckets")
    return args


def session(profile: Optional[str]):
    if profile:
        return boto3.Session(profile_name=profile)
    return boto3.Session()


def list_bucket_names(s3) -> List[str]:
    resp = s3.list_buckets()
    return [b["Name"] for b in resp.get("Buckets", []) or [] if b.get("Name")]


def match_buckets(names: List[str], pattern: str) -> List[str]:
    needle = pattern.lower()
    return [n for n in names if needle in n.lower()]


def show_targets(buckets: List[str]):
    print("The following buckets and ALL their contents will be PERMANENTLY DELETED:")
    for name in buckets:
        print(f"  - {name}")
    print("")


def confirm(buckets: List[str], prompt=input) -> bool:
    show_targets(buckets)
    try:
        answer = prompt(f"Type '{CONFIRM_TOKEN}' (in uppercase) to confirm permanent deletion of these buckets: ")
    except EOFError:
        print("")
        return False
    return answer == CONFIRM_TOKEN


def _entry(item: Dict[str, Any]) -> Optional[Dict[str, str]]:
    key = item.get("Key")
    if key is None:
        return None
    version_id = item.get("VersionId")
    if version_id:
        return {"Key": key, "VersionId": version_id}
    return {"Key": key}


def iter_version_entries(s3, bucket: str) -> Iterator[List[Dict[str, str]]]:
    """Yield one batch of {Key, VersionId} entries per ListObjectVersions page.

    Both current/noncurrent versions and delete markers are included.
    """
    paginator = s3.get_paginator("list_object_versions")
    for page in paginator.paginate(Bucket=bucket):
        batch = []
        for item in (page.get("Versions") or []) + (page.get("DeleteMarkers") or []):
            entry = _entry(item)
            if entry:
                batch.append(entry)
        if batch:
            yield batch


def _describe(bucket: str, entry: Dict[str, str]) -> str:
    # "null" marks objects stored without versioning; the id is still sent on delete
    if entry.get("VersionId") not in (None, "", "null"):
        return f"Deleting object version: s3://{bucket}/{entry['Key']} with VersionId: {entry['VersionId']}"
    return f"Deleting object: s3://{bucket}/{entry['Key']}"


def delete_entries(s3, bucket: str, entries: List[Dict[str, str]]) -> Tuple[int, List[Dict[str, Any]]]:
    deleted = 0
    errors: List[Dict[str, Any]] = []
    for i in range(0, len(entries), DELETE_BATCH):
        chunk = entries[i:i + DELETE_BATCH]
        resp = s3.delete_objects(Bucket=bucket, Delete={"Objects": chunk, "Quiet": False})
        for d in resp.get("Deleted", []) or []:
            print(f"    {_describe(bucket, d)}")
            deleted += 1
        for e in resp.get("Errors", []) or []:
            print(f"    Failed to delete s3://{bucket}/{e.get('Key')} ({e.get('Code')}: {e.get('Message')})", file=sys.stderr)
            errors.append(e)
    return deleted, errors


def empty_bucket(s3, bucket: str) -> Tuple[int, List[Dict[str, Any]]]:
    """Remove every object version and delete marker from ``bucket``.

    Returns the number of entries deleted and the per-key errors S3 reported.
    SDK errors from listing or deleting propagate.
    """
    seen = 0
    deleted = 0
    errors: List[Dict[str, Any]] = []
    for batch in iter_version_entries(s3, bucket):
        seen += len(batch)
        n, errs = delete_entries(s3, bucket, batch)
        deleted += n
        errors.extend(errs)
    if seen == 0:
        print(f"    No objects or versions found in bucket '{bucket}'. Proceeding with bucket deletion.")
    return deleted, errors


def delete_bucket(s3, bucket: str) -> Optional[str]:
    try:
        s3.delete_bucket(Bucket=bucket)
        return None
    except (BotoCoreError, ClientError) as e:
        return str(e)


def purge_bucket(s3, bucket: str) -> Dict[str, Any]:
    rec: Dict[str, Any] = {
        "bucket": bucket,
        "objects_deleted": 0,
        "object_errors": 0,
        "deleted": False,
        "error": None,
    }
    print(f"Attempting to delete bucket: {bucket}")
    print("  - Deleting all object versions and delete markers...")
    try:
        deleted, errors = empty_bucket(s3, bucket)
    except (BotoCoreError, ClientError) as e:
        rec["error"] = f"failed to empty bucket: {e}"
        print(f"  ERROR: Failed to empty bucket '{bucket}': {e}", file=sys.stderr)
        print("")
        return rec
    rec["objects_deleted"] = deleted
    rec["object_errors"] = len(errors)

    print("  - Attempting to delete the empty bucket...")
    err = delete_bucket(s3, bucket)
    if err is None:
        rec["deleted"] = True
        print(f"  SUCCESS: Bucket '{bucket}' and its contents have been permanently deleted.")
    else:
        rec["error"] = err
        print(
            f"  ERROR: Failed to delete bucket '{bucket}': {err}\n"
            "         This might be due to a bucket policy, MFA Delete, or other configurations.\n"
            "         Check your AWS permissions; manual intervention in the AWS Console might be required.\n"
            "         You may try running the command with --debug for more details:\n"
            f"         aws s3api delete-bucket --bucket {bucket} --debug",
            file=sys.stderr,
        )
    print("")
    return rec


def print_summary(pattern: str, matched: List[str], results: List[Dict[str, Any]]):
    print(json.dumps({
        "filter": pattern,
        "matched": matched,
        "results": results,
    }, indent=2, default=str))


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    sess = session(args.profile)
    s3 = sess.client("s3", region_name=args.region) if args.region else sess.client("s3")

    print(SEPARATOR)
    print("S3 Bucket Deletion Script")
    print(SEPARATOR)
    print(f'Searching for S3 buckets containing "{args.filter}"...')
    print("")

    try:
        names = list_bucket_names(s3)
    except (BotoCoreError, ClientError) as e:
        print(f"Error: Failed to list S3 buckets. Please check your AWS configuration and permissions. ({e})", file=sys.stderr)
        return 1

    matched = match_buckets(names, args.filter)
    if not matched:
        print(f'No S3 buckets found matching "{args.filter}".')
        if args.json:
            print_summary(args.filter, matched, [])
        return 0

    if args.yes:
        show_targets(matched)
    elif not confirm(matched, input):
        print("Deletion cancelled by user. No buckets were deleted.")
        if args.json:
            print_summary(args.filter, matched, [])
        return 0

    print("")
    print("Initiating deletion process...")
    print(SEPARATOR)

    results = [purge_bucket(s3, name) for name in matched]

    print(SEPARATOR)
    print("Script execution complete.")
    print(SEPARATOR)

    if args.json:
        print_summary(args.filter, matched, results)

    if any(not r["deleted"] for r in results):
        return 1
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
