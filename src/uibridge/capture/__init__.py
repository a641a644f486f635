"""Visual capture support: rasterizer loading, data-URL helpers, and screenshot persistence."""
