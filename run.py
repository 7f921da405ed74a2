#!/usr/bin/env python3
"""LAS georeferencing: raw LiDAR points + pose file -> world-frame LAS.

Usage:
    python run.py /data/run_01
    python run.py /data/run_01 --config config.yaml
    python run.py /data/run_01 --output world.las
    python run.py /data/run_01 --split-channels

The pose file, point file and output file named in the config are resolved
relative to the data directory.
"""
import argparse
import os
import sys
import time

from tqdm import tqdm

from las_georef.config import load_config
from las_georef.worker import ConversionWorker


class TqdmProgress:
    """Progress callback that drives a tqdm bar (percent values 0-100)."""

    def __init__(self):
        self.pbar = tqdm(total=100, desc="Converting", unit="%",
                         dynamic_ncols=True)

    def __call__(self, percent: int):
        percent = max(0, min(100, int(percent)))
        if percent > self.pbar.n:
            self.pbar.update(percent - self.pbar.n)

    def close(self):
        self.pbar.close()


def main():
    parser = argparse.ArgumentParser(
        description='LAS georeferencing\n\n'
                    'Fuse a raw LiDAR LAS file with a pose trajectory and write\n'
                    'a world-frame LAS point cloud.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('data_dir',
                        help='Directory holding the pose and point files')
    parser.add_argument('--config', default=None,
                        help='Path to YAML config file '
                             '(default: config.yaml in this folder)')
    parser.add_argument('--output', default=None,
                        help='Override the output file name from config')
    parser.add_argument('--split-channels', action='store_true',
                        help='Write one output file per configured channel')

    args = parser.parse_args()

    data_dir = os.path.abspath(args.data_dir)
    if not os.path.isdir(data_dir):
        print(f"Error: Data directory not found: {data_dir}")
        sys.exit(1)

    if args.config:
        config_path = os.path.abspath(args.config)
    else:
        config_path = os.path.join(
            os.path.dirname(os.path.abspath(__file__)), 'config.yaml')

    if not os.path.isfile(config_path):
        print(f"Error: Config file not found: {config_path}")
        sys.exit(1)

    config = load_config(config_path)
    config.data_dir = data_dir
    if args.output:
        config.cloud_out = args.output
    if args.split_channels:
        config.split_channels = True

    print("=" * 60)
    print("  LAS Georeferencing")
    print("=" * 60)
    print(f"  Data dir:   {data_dir}")
    print(f"  Config:     {config_path}")
    print(f"  Poses:      {config.pose_path}")
    print(f"  Points:     {config.points_path}")
    print(f"  Output:     {config.output_path}")
    print(f"  Channels:   {config.line_ids}")
    print("=" * 60)

    t0 = time.time()
    progress = TqdmProgress()
    worker = ConversionWorker(config, progress=progress)
    worker.start()
    worker.join()
    progress.close()

    if worker.error is not None:
        print(f"Error: conversion aborted: {worker.error!r}")
        sys.exit(1)

    failed = [r for r in worker.results if not r.ok]
    if failed or not worker.results:
        for r in failed:
            print(f"Error: {r.error}")
        if not config.line_ids:
            print("Error: no channels configured for conversion")
        sys.exit(1)

    print("\n" + "=" * 60)
    print("  Conversion Complete!")
    print("=" * 60)
    print(f"  Total time: {time.time() - t0:.1f}s")
    for r in worker.results:
        print(f"    {r.output_path} ({r.stats.accepted:,} points)")
    print()


if __name__ == '__main__':
    main()
