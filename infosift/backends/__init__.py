from infosift.backends.local import Broadcast, PartitionedDataset, broadcast

__all__ = ["Broadcast", "PartitionedDataset", "broadcast"]
