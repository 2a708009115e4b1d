"""
PHOTO EDIT KERNEL - Memory Manager

Monitor system memory and size the background worker pool.
"""

import multiprocessing

import psutil


class MemoryManager:
    """Monitor memory and decide how much raster work can run at once."""

    # uint8 RGBA raster: 4 channels x 1 byte
    BYTES_PER_PIXEL = 4

    # Reserve this much RAM for the system/UI/other processes
    SAFETY_MARGIN_GB = 0.5

    # A transform holds its input, its output and one working buffer
    BUFFERS_PER_TRANSFORM = 3

    # Editing one image rarely benefits from more threads than this
    MAX_WORKERS = 4

    MIN_WORKERS = 1

    def get_cpu_count(self) -> int:
        """Get number of CPU cores available."""
        return multiprocessing.cpu_count()

    def get_available_memory_gb(self) -> float:
        """Get current available memory in GB."""
        return psutil.virtual_memory().available / (1024 ** 3)

    def get_total_memory_gb(self) -> float:
        """Get total system memory in GB."""
        return psutil.virtual_memory().total / (1024 ** 3)

    def get_optimal_workers(self) -> int:
        """
        Number of worker threads for the editor pool.

        Leaves one core for the interactive thread and never exceeds
        MAX_WORKERS.
        """
        max_by_cpu = max(self.MIN_WORKERS, self.get_cpu_count() - 1)
        return max(self.MIN_WORKERS, min(max_by_cpu, self.MAX_WORKERS))

    def estimate_image_memory_mb(self, width: int, height: int) -> float:
        """Estimate memory required for a single raster in MB."""
        pixels = width * height
        return (pixels * self.BYTES_PER_PIXEL) / (1024 ** 2)

    def can_process_image(self, width: int, height: int) -> bool:
        """Check if a transform producing a width x height raster fits in memory."""
        required_mb = self.estimate_image_memory_mb(width, height) * self.BUFFERS_PER_TRANSFORM
        required_gb = required_mb / 1024
        return self.get_available_memory_gb() > (required_gb + self.SAFETY_MARGIN_GB)

    def get_resource_summary(self) -> dict:
        """Get a summary of available resources."""
        return {
            'cpu_count': self.get_cpu_count(),
            'total_memory_gb': round(self.get_total_memory_gb(), 1),
            'available_memory_gb': round(self.get_available_memory_gb(), 1),
            'optimal_workers': self.get_optimal_workers(),
        }
