"""Domain primitives shared by the engines and configuration layers."""
