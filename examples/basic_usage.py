"""Basic usage example for Terrastore Python SDK."""

from terrastore import (
    ClientConfig,
    MapReduceQuery,
    MergeDescriptor,
    NoSuchKeyError,
    Range,
    Task,
    TerrastoreClient,
    UnsatisfiedConditionError,
)


def main() -> None:
    """Demonstrate basic Terrastore operations."""
    # Create client configuration
    config = ClientConfig(
        hosts=["http://localhost:8080"],  # Server base URLs, tried in order
        timeout=5000,  # Transport timeout in milliseconds
    )

    # Use the context manager to release pooled connections on exit
    with TerrastoreClient(config) as client:
        customers = client.bucket("customers")

        # Put a value
        print("1. Putting values...")
        customers.key("alice").put({"name": "Alice", "city": "Rome", "tags": []})
        customers.key("bob").put({"name": "Bob", "city": "Paris", "tags": []})
        print("   Stored alice and bob")

        # Get a value
        print("\n2. Getting value...")
        alice = customers.key("alice").get(dict)
        print(f"   Retrieved: {alice}")

        # Conditional put
        print("\n3. Conditional put (only if city is Oslo)...")
        try:
            customers.key("alice").conditional("jxpath:/city[.='Oslo']").put({"name": "Alice"})
            print("   Value updated")
        except UnsatisfiedConditionError as e:
            print(f"   Expected error: {e}")

        # Range query
        print("\n4. Range query from 'a' to 'b'...")
        for key, value in customers.range().from_key("a").to_key("b").get(dict).items():
            print(f"   {key}: {value}")

        # Merge
        print("\n5. Merging changes into alice...")
        merged = (
            customers.key("alice")
            .merge(MergeDescriptor().replace({"city": "Milan"}).add_to_array("tags", ["vip"]))
            .execute_and_get(dict)
        )
        print(f"   Merged: {merged}")

        # Map-reduce
        print("\n6. Counting values with map-reduce...")
        query = MapReduceQuery(
            range=Range(start_key="a", end_key="z"),
            task=Task(mapper="size", reducer="size", timeout=10000),
        )
        print(f"   Result: {customers.map_reduce(query).execute(dict)}")

        # Remove a value
        print("\n7. Removing alice...")
        customers.key("alice").remove()

        # Verify removal
        print("\n8. Verifying removal...")
        try:
            customers.key("alice").get(dict)
        except NoSuchKeyError as e:
            print(f"   Confirmed removed (status {e.status})")

        # Cluster statistics
        print("\n9. Cluster statistics...")
        for cluster in client.stats().cluster().clusters:
            print(f"   {cluster.name}: {cluster.status}, {len(cluster.nodes)} node(s)")

    print("\nDone")


if __name__ == "__main__":
    main()
