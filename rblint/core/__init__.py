# RbLint core
