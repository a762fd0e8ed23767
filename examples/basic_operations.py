# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
from cos_fs import CosFileSystem, NotFoundError
import sys
import uuid

def main(bucket):
    # Create a filesystem from COS_CONFIG_FILE or the COS_* environment variables
    fs = CosFileSystem()

    try:
        base = f"cos://{bucket}/examples-{uuid.uuid4()}"

        # Create a directory and write a file into it
        fs.create_dir(base)
        fs.write_file(f"{base}/hello.txt", b"Hello, ")
        print(f"Created {base}/hello.txt")

        # Append to the file
        with fs.new_appendable_file(f"{base}/hello.txt") as writer:
            writer.append(b"World!")

        # Get file metadata
        stats = fs.stat(f"{base}/hello.txt")
        print(f"File size: {stats.length} bytes")
        print(f"Last modified (ns): {stats.mtime_nsec}")

        # Read part of the file
        reader = fs.new_random_access_file(f"{base}/hello.txt")
        print(f"Bytes 7-11: {reader.read(7, 5).decode()}")

        # List the directory
        print("Directory contents:")
        for name in fs.get_children(base):
            print(f"- {name}")

        # Rename, then clean up
        fs.rename_file(f"{base}/hello.txt", f"{base}/greeting.txt")
        fs.delete_file(f"{base}/greeting.txt")
        fs.delete_dir(base)

        try:
            fs.stat(base)
        except NotFoundError:
            print(f"Removed {base}")

    finally:
        fs.close()

if __name__ == "__main__":
    main(sys.argv[1])
