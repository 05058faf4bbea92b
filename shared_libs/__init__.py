# Shared Libraries - analysis core, storage and workflow building blocks used by every function
