"""Collectors that read CPU, GPU, memory, disk, network and uptime metrics from procfs and sysfs."""